"""Annotation tag vocabulary and parser."""

from tags.models import Tag
from tags.parse import parse_tags
from tags.vocabulary import CORE_TAGS, DEFAULT_VOCABULARY, TagGrammar, TagVocabulary

__all__ = [
    "CORE_TAGS",
    "DEFAULT_VOCABULARY",
    "Tag",
    "TagGrammar",
    "TagVocabulary",
    "parse_tags",
]
