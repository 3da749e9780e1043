"""Utility modules."""

from bucket_repo.utils.keys import current_directory, directory_marker
from bucket_repo.utils.validation import validate_key

__all__ = ["current_directory", "directory_marker", "validate_key"]
