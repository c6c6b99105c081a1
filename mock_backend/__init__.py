"""Local stand-in for the Custom Dining backend.

Run with `uvicorn mock_backend.main:app --port 3006`; set COLD_START_REQUESTS
to make the first requests answer 503 like a sleeping hosted instance.
"""
