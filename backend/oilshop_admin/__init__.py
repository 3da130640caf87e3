"""Heating-oil shop administration backend (FastAPI)."""
