import logging
import re

logger = logging.getLogger(__name__)

PARAGRAPH_BREAK = '\n\n'
SENTENCE_BOUNDARY = re.compile(r'(?<=[.!?])\s+(?=[A-Z0-9"\'(\[])')

CATEGORY_KEYWORDS = {
    'emergency': ['emergency', 'evacuat', 'fire', 'earthquake', 'ambulance', 'first aid', 'alarm'],
    'safety': ['safety', 'security', 'harassment', 'theft', 'suspicious', 'hazard', 'injury'],
    'policy': ['policy', 'regulation', 'code of conduct', 'prohibited', 'disciplinary', 'rule'],
    'procedure': ['procedure', 'step', 'how to', 'process', 'report to', 'submit'],
    'resource': ['contact', 'hotline', 'phone', 'clinic', 'counsel', 'office hours', 'service'],
}


class PreprocessingAgent:
    def __init__(self, chunk_size=1000, chunk_overlap=200):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if not 0 <= chunk_overlap < chunk_size:
            raise ValueError("chunk_overlap must be in [0, chunk_size)")
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    def preprocess_document(self, text, filename=None):
        """Main preprocessing pipeline: clean, then chunk"""
        cleaned_text = self.clean_text(text)
        chunks = self.split_into_chunks(cleaned_text)
        logger.info("Preprocessed %s into %d chunk(s)", filename or 'document', len(chunks))
        return {
            'cleaned_text': cleaned_text,
            'chunks': chunks,
            'total_chunks': len(chunks)
        }

    def clean_text(self, text):
        """Clean and normalize document text"""
        if not text:
            return ""

        # Normalize line breaks
        text = re.sub(r'\r\n|\r', '\n', text)

        # Drop control characters except newlines and tabs
        text = re.sub(r'[\x00-\x08\x0b-\x1f\x7f]', '', text)

        text = re.sub(r'[ \t\f\v]+', ' ', text)
        text = re.sub(r' *\n *', '\n', text)
        text = re.sub(r'\n{3,}', '\n\n', text)

        return text.strip()

    def split_into_chunks(self, text):
        """Split text into overlapping chunks of at most ``chunk_size`` characters"""
        if not text:
            return []
        if len(text) <= self.chunk_size:
            return [text]

        # (piece, separator placed before it); paragraphs keep their blank line
        units = []
        for paragraph in text.split(PARAGRAPH_BREAK):
            paragraph = paragraph.strip()
            if not paragraph:
                continue
            if len(paragraph) <= self.chunk_size:
                pieces = [paragraph]
            else:
                pieces = self._split_paragraph(paragraph)
            units.extend((piece, PARAGRAPH_BREAK if i == 0 else ' ') for i, piece in enumerate(pieces))

        chunks = []
        current = []

        for unit in units:
            if current and len(self._join(current + [unit])) > self.chunk_size:
                chunks.append(self._join(current))
                current = self._overlap_tail(current, unit)
            current.append(unit)

        if current:
            chunks.append(self._join(current))

        return [c.strip() for c in chunks if c.strip()]

    @staticmethod
    def _join(units):
        first, _ = units[0]
        return first + ''.join(separator + piece for piece, separator in units[1:])

    def _split_paragraph(self, paragraph):
        """Sentences of a long paragraph, hard-splitting oversized sentences"""
        pieces = []
        for sentence in SENTENCE_BOUNDARY.split(paragraph):
            sentence = sentence.strip()
            if not sentence:
                continue
            if len(sentence) <= self.chunk_size:
                pieces.append(sentence)
            else:
                pieces.extend(self._split_words(sentence))
        return pieces

    def _split_words(self, sentence):
        pieces = []
        current = ''
        for word in sentence.split():
            while len(word) > self.chunk_size:
                if current:
                    pieces.append(current)
                    current = ''
                pieces.append(word[:self.chunk_size])
                word = word[self.chunk_size:]
            candidate = f"{current} {word}" if current else word
            if len(candidate) > self.chunk_size:
                pieces.append(current)
                current = word
            else:
                current = candidate
        if current:
            pieces.append(current)
        return pieces

    def _overlap_tail(self, units, next_unit):
        """Trailing units of the previous chunk to repeat at the start of the next one"""
        if not self.chunk_overlap:
            return []
        piece, separator = next_unit
        budget = min(self.chunk_overlap, self.chunk_size - len(piece) - len(separator))
        tail = []
        for unit in reversed(units):
            if len(self._join([unit] + tail)) > budget:
                break
            tail.insert(0, unit)
        return tail

    def suggest_category(self, text, filename=''):
        """Keyword-based category guess for uploads that arrive without one"""
        haystack = f"{filename} {text[:5000]}".lower()
        scores = {
            category: sum(haystack.count(keyword) for keyword in keywords)
            for category, keywords in CATEGORY_KEYWORDS.items()
        }
        best = max(scores, key=scores.get)
        return best if scores[best] > 0 else 'other'
