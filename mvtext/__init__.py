"""mvtext: extract and re-apply translatable text in RPG Maker MV/MZ data files."""

import re

__version__ = "0.3.0"

# Hiragana, Katakana, CJK ideographs and full-width forms
JAPANESE_RE = re.compile(r'[\u3040-\u309F\u30A0-\u30FF\u4E00-\u9FFF\uFF00-\uFFEF]')

# RPG Maker message control codes: \C[2], \N[1], \V[10], \I[64], \{, \}, \., \|, \!, \>, \<, \^, \$, \\
CONTROL_CODE_RE = re.compile(r'\\[A-Za-z]+\[[^\]]*\]|\\[A-Za-z]+<[^>]*>|\\[{}.|!><^$\\G]')
