"""Walkers that extract translatable messages from Markdown trees and
write translations back into them.
"""

from .extract import ExtractionWalker
from .localize import LocalizationWalker
from .message import MessageAccumulator

__all__ = ["ExtractionWalker", "LocalizationWalker", "MessageAccumulator"]
