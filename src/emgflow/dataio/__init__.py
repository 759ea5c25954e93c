"""Data input/output helpers (exports, captures and file paths).

Utility modules here keep disk-level concerns isolated from the pipeline:
- :mod:`csv_writer` renders recording exports.
- :mod:`log_loader` parses captures and exports for replay and review.
- :mod:`file_paths` centralises the directory layout for exports.
"""
