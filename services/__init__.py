"""Services package - Image processing, vision calls and OCR session orchestration."""
