"""
Visible text extraction from an HTML body prefix.
"""

from bs4 import BeautifulSoup, Comment

DEFAULT_WORD_COUNT = 20


def extract_words(body: str, count: int = DEFAULT_WORD_COUNT) -> str:
    """
    Return the first ``count`` words of visible page text.

    Scripts, styles and comments are dropped before the text is collected.
    The body is usually a truncated prefix, so an unterminated ``<script>``
    swallows everything after it.
    """
    if not body:
        return ""
    soup = BeautifulSoup(body, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()
    words = soup.get_text(separator=" ", strip=True).split()
    return " ".join(words[:count])
