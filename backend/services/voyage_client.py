"""
Voyage AI embeddings client.

Embedding failures never fail the caller: a failed request yields ``None``
for every text in it, and retrieval falls back to full-text search.
"""
import logging

import requests

logger = logging.getLogger(__name__)

VOYAGE_EMBEDDINGS_URL = 'https://api.voyageai.com/v1/embeddings'
MAX_BATCH_SIZE = 128


class VoyageEmbeddingClient:
    def __init__(self, api_key, model='voyage-2', timeout=30, url=VOYAGE_EMBEDDINGS_URL):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.url = url

    def embed_query(self, text):
        """Embed a search query, returns a vector or None"""
        return self._embed([text], input_type='query')[0]

    def embed_documents(self, texts):
        """Embed document chunks in batches, with None for failed batches"""
        embeddings = []
        for start in range(0, len(texts), MAX_BATCH_SIZE):
            batch = texts[start:start + MAX_BATCH_SIZE]
            embeddings.extend(self._embed(batch, input_type='document'))
        return embeddings

    def _embed(self, texts, input_type):
        if not self.api_key:
            logger.warning("VOYAGE_API_KEY is not set, skipping embeddings")
            return [None] * len(texts)

        logger.debug("Requesting %d %s embedding(s) from Voyage AI", len(texts), input_type)
        try:
            response = requests.post(
                self.url,
                json={'input': texts, 'model': self.model, 'input_type': input_type},
                headers={
                    'Authorization': f'Bearer {self.api_key}',
                    'Content-Type': 'application/json'
                },
                timeout=self.timeout
            )
            response.raise_for_status()
            payload = response.json()
        except requests.HTTPError as e:
            body = e.response.text[:500] if e.response is not None else ''
            logger.error("Voyage AI API error: %s %s", e, body)
            return [None] * len(texts)
        except (requests.RequestException, ValueError) as e:
            logger.error("Error generating embedding: %s", e)
            return [None] * len(texts)

        data = payload.get('data') if isinstance(payload, dict) else None
        if (not isinstance(data, list) or len(data) != len(texts)
                or not all(self._is_embedding_item(item) for item in data)):
            logger.error("Invalid response from Voyage AI")
            return [None] * len(texts)

        ordered = sorted(data, key=lambda item: item.get('index', 0))
        return [item.get('embedding') for item in ordered]

    @staticmethod
    def _is_embedding_item(item):
        return (isinstance(item, dict)
                and isinstance(item.get('embedding'), list)
                and isinstance(item.get('index', 0), int))
