"""Row sources feeding the importer pipeline."""

from .csv_rows import CSVAdapterError, CSVHeaderError, CSVRowSource, HeaderValidationResult, validate_headers

__all__ = ["CSVAdapterError", "CSVHeaderError", "CSVRowSource", "HeaderValidationResult", "validate_headers"]
