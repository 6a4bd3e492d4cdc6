"""Autocomplete suggestions."""

from pos_search.services.suggestions.index import Suggestion, SuggestionIndex

__all__ = ["Suggestion", "SuggestionIndex"]
