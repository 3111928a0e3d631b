"""Core resolution engine: versioning, catalog, persistence seams, resolution."""
