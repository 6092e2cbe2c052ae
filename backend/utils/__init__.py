"""
Utility Functions

This package contains helper functions for:
- auth_middleware: JWT tokens, role checks and request validation decorators
- errors: API error types and JSON response envelopes
- file_handler / ocr: Text extraction from uploaded files and scanned images
- pagination: Page/limit query parsing
- serialization: JSON provider, ObjectId and time helpers
"""
