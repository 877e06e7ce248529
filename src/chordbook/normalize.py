"""
Text normalization for search comparisons

- Strip punctuation: . , : ; ! ? and quotation marks
- Lowercase
- Unicode NFC composition (so a decomposed "е" + diaeresis becomes "ё")
- Unify letter variants from a locale table ("ё" and Latin "ë" become "е")

Whitespace and newlines are left alone: whole-word matching downstream
depends on word boundaries.
"""

import re
import unicodedata
from typing import Optional

PUNCTUATION = '.,:;!?"«»“”„'

# Letters that read as the same sound for a Russian-speaking user
DEFAULT_LETTER_TABLE = {
    'ё': 'е',
    'ë': 'е',  # Latin e with diaeresis, common in copy-pasted titles
}


class Normalizer:
    """Canonicalizes text for comparison"""

    def __init__(self, letter_table: Optional[dict] = None, punctuation: str = PUNCTUATION):
        table = DEFAULT_LETTER_TABLE if letter_table is None else letter_table
        # Lowercase the keys too: the table is applied after case folding
        self.letter_table = {k.lower(): v.lower() for k, v in table.items()}
        self.punctuation = punctuation
        self._punct_re = re.compile('[' + re.escape(punctuation) + ']') if punctuation else None
        self._translation = str.maketrans(self.letter_table) if self._single_chars() else None

    def _single_chars(self) -> bool:
        return all(len(k) == 1 for k in self.letter_table)

    def normalize(self, text: str) -> str:
        if not text:
            return ''
        # Punctuation goes first: removing it can bring a letter and a
        # combining mark together, and they must compose before the table
        if self._punct_re is not None:
            text = self._punct_re.sub('', text)
        text = unicodedata.normalize('NFC', text.lower())
        if self._translation is not None:
            text = text.translate(self._translation)
        else:
            for src, dst in self.letter_table.items():
                text = text.replace(src, dst)
        return text

    __call__ = normalize


DEFAULT_NORMALIZER = Normalizer()


def normalize(text: str) -> str:
    """Normalize text with the default locale table"""
    return DEFAULT_NORMALIZER.normalize(text)
