"""Service layer for the rendition review API.

Submodules are imported directly (``from services.batch import run_review``);
``models`` depends on ``services.normalization``, so nothing is re-exported here.
"""
