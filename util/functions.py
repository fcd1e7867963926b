def clip_text(text: str, max_chars: int = 300) -> str:
    """
    - Trim 'text' to at most `max_chars` characters.
    - Adds an ellipsis when trimming occurs.
    """
    text = text.strip()
    if len(text) <= max_chars:
        return text
    return text[:max_chars].rstrip() + " …"


def last_line(text: str) -> str:
    for line in reversed(text.splitlines()):
        if line.strip():
            return line.strip()
    return ""
