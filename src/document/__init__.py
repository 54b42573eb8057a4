"""Document format: header/body parsing, markup rendering, content analysis
and lifecycle locations on disk."""

from pressroom.document.frontmatter import deep_merge, parse, serialize, update_header
from pressroom.document.markup import to_html
from pressroom.document.models import Document, DocumentStage
from pressroom.document.repository import DocumentRepository

__all__ = [
    "Document",
    "DocumentRepository",
    "DocumentStage",
    "deep_merge",
    "parse",
    "serialize",
    "to_html",
    "update_header",
]
