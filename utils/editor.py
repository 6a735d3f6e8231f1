"""
Markdown formatting helpers for the card editor.

Pure text functions: they take the editor text and a selection range and
return the new text plus the cursor position. No widget code lives here.
"""

from utils.constants import MAX_CARD_LENGTH

_WRAPS = {
    'bold': ('**', '**', 'bold text'),
    'italic': ('*', '*', 'italic text'),
    'link': ('[', '](https://example.com)', 'link text'),
}


def insert_markdown(text: str, start: int, end: int, before: str, after: str = '',
                    placeholder: str = 'text') -> tuple[str, int]:
    """Wrap text[start:end] (or ``placeholder`` when empty) in before/after."""
    selected = text[start:end] or placeholder
    new_text = text[:start] + before + selected + after + text[end:]
    return new_text, start + len(before) + len(selected)


def apply_format(text: str, start: int, end: int, fmt: str) -> tuple[str, int]:
    selected = text[start:end] or 'text'

    if fmt in _WRAPS:
        before, after, placeholder = _WRAPS[fmt]
        return insert_markdown(text, start, end, before, after, placeholder)

    if fmt == 'code':
        if '\n' in selected:
            return insert_markdown(text, start, end, '```\n', '\n```', 'code block')
        return insert_markdown(text, start, end, '`', '`', 'code')

    if fmt == 'ul':
        formatted = '\n'.join(f'- {line}' for line in selected.split('\n'))
        return _replace(text, start, end, formatted)

    if fmt == 'ol':
        formatted = '\n'.join(f'{i}. {line}' for i, line in enumerate(selected.split('\n'), 1))
        return _replace(text, start, end, formatted)

    return text, end


def _replace(text, start, end, replacement):
    return text[:start] + replacement + text[end:], start + len(replacement)


def char_count_label(text: str) -> str:
    return f"{len(text)} / {MAX_CARD_LENGTH}"
