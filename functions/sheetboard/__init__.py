"""
Bulletin-board backend package.

This package provides a FastAPI application that keeps posts in a
spreadsheet-style row table, stores attachments in blob storage, and drafts
post text with Gemini.
"""
