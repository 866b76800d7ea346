"""Ship Scores Browser: searchable cruise liner catalog with lazily loaded inspection scores."""

__version__ = "1.0.0"
