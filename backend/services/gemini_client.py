import logging

import google.generativeai as genai

logger = logging.getLogger(__name__)

FALLBACK_ANSWER = (
    "I apologize, but I'm having trouble generating a response right now. "
    "Please try again later or contact campus security directly for urgent matters."
)


class GenerationConfigError(Exception):
    """Raised when the generation backend cannot be used at all"""


class GeminiAnswerGenerator:
    def __init__(self, api_key, model_name='gemini-2.5-flash'):
        self.api_key = api_key
        self.model_name = model_name
        self._model = None

    @property
    def model(self):
        if self._model is None:
            genai.configure(api_key=self.api_key)
            self._model = genai.GenerativeModel(self.model_name)
        return self._model

    def generate(self, prompt):
        """Generate text for ``prompt``; falls back to an apology on API failures"""
        if not self.api_key:
            raise GenerationConfigError("Gemini API key is invalid or missing")

        try:
            response = self.model.generate_content(prompt)
            text = response.text.strip()
        except Exception as e:
            if 'API_KEY' in str(e) or 'API key' in str(e):
                raise GenerationConfigError("Gemini API key is invalid or missing") from e
            logger.error("Error generating AI response: %s", e)
            return FALLBACK_ANSWER

        if not text:
            return FALLBACK_ANSWER
        logger.info("AI response generated (%d chars)", len(text))
        return text
