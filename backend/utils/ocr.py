#ocr.py
import cv2
import numpy as np
import pytesseract
from PIL import Image


class OCRProcessor:
    def __init__(self, tesseract_cmd=None):
        # Only needed when tesseract is not on PATH (e.g. Windows installs)
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    def extract_text_from_image(self, image_source):
        """Extract text from an image path or file-like object using OCR"""
        image = Image.open(image_source).convert('RGB')

        # Convert to OpenCV format for preprocessing
        cv_image = cv2.cvtColor(np.array(image), cv2.COLOR_RGB2BGR)
        processed_image = self._preprocess_image(cv_image)

        text = pytesseract.image_to_string(processed_image, config='--psm 6')
        return text.strip()

    def _preprocess_image(self, image):
        """Preprocess image for better OCR results"""
        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)

        # Remove noise
        denoised = cv2.medianBlur(gray, 3)

        _, thresh = cv2.threshold(denoised, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
        return thresh
