"""Vocabulary-sheet extraction engine.

This package focuses on producing, per batch of sheet images:
- one cropped illustration per detected card (JPEG bytes)
- a spreadsheet of the detected words in reading order
- a zip of the crops named after their words

Card detection itself is delegated to a hosted multimodal model.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
