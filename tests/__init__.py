"""Tests for the search query service.

Unit tests cover each pipeline stage; executor and API tests run against an
in-memory fake vector store, and the Chroma backend is exercised through
``httpx.MockTransport``.
"""
