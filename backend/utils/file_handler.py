#file_handler.py
import io
import logging
import os

from docx import Document as DocxDocument
from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError
from werkzeug.utils import secure_filename

from backend.utils.ocr import OCRProcessor

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {'jpg', 'jpeg', 'png', 'bmp', 'tiff', 'tif'}


class ExtractionError(Exception):
    """Raised when no usable text can be read from an upload"""


class FileHandler:
    def __init__(self, tesseract_cmd=None):
        self.ocr_processor = OCRProcessor(tesseract_cmd)
        self.allowed_extensions = {'pdf', 'txt', 'docx'} | IMAGE_EXTENSIONS

    @staticmethod
    def get_extension(filename):
        return filename.rsplit('.', 1)[1].lower() if filename and '.' in filename else ''

    def is_allowed_file(self, filename):
        """Check if file extension is allowed"""
        return self.get_extension(filename) in self.allowed_extensions

    def read_upload(self, file):
        """Read an uploaded FileStorage into (safe filename, extension, bytes)"""
        if not file or not file.filename:
            raise ExtractionError("No file selected")
        if not self.is_allowed_file(file.filename):
            raise ExtractionError(
                f"Only {', '.join(sorted(self.allowed_extensions))} files are supported"
            )
        filename = secure_filename(file.filename) or f"upload.{self.get_extension(file.filename)}"
        return filename, self.get_extension(file.filename), file.read()

    def extract_text(self, data, extension):
        """Extract text from file bytes according to the extension"""
        try:
            if extension == 'pdf':
                text = self._extract_from_pdf(data)
            elif extension == 'txt':
                text = self._extract_from_txt(data)
            elif extension == 'docx':
                text = self._extract_from_docx(data)
            elif extension in IMAGE_EXTENSIONS:
                text = self.ocr_processor.extract_text_from_image(io.BytesIO(data))
            else:
                raise ExtractionError(f"Unsupported file format: {extension}")
        except ExtractionError:
            raise
        except Exception as e:
            logger.warning("Text extraction failed for .%s upload: %s", extension, e)
            raise ExtractionError(f"Text extraction failed: {e}") from e

        if not text.strip():
            raise ExtractionError("No text could be extracted from the file")
        return text.strip()

    def _extract_from_pdf(self, data):
        """Extract text from PDF bytes"""
        try:
            reader = PdfReader(io.BytesIO(data))
        except PdfReadError as e:
            raise ExtractionError(f"Could not read PDF: {e}") from e

        pages = []
        for page in reader.pages:
            pages.append(page.extract_text() or '')
        return "\n".join(pages)

    def _extract_from_txt(self, data):
        for encoding in ('utf-8-sig', 'latin-1'):
            try:
                return data.decode(encoding)
            except UnicodeDecodeError:
                continue
        raise ExtractionError("Text file encoding is not supported")

    def _extract_from_docx(self, data):
        """Extract text from DOCX bytes"""
        doc = DocxDocument(io.BytesIO(data))
        return "\n".join(paragraph.text for paragraph in doc.paragraphs)

    @staticmethod
    def default_title(filename):
        stem = os.path.splitext(filename)[0]
        return stem.replace('_', ' ').replace('-', ' ').strip() or filename
