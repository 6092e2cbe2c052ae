"""
External AI services

- voyage_client: Voyage AI text embeddings
- gemini_client: Google Gemini answer generation
"""
