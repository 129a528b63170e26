"""
Template-driven web scraping app package.

This package provides:
- A CSV template reader (header row -> output columns)
- A client for the remote extraction API, with a per-session call log
- The three-stage extraction workflow and result recovery
- Sorting and CSV export of extracted rows
- A single Streamlit UI entrypoint.
"""
