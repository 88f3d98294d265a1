"""FastAPI HTTP surface."""
