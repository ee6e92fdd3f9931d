"""Line-local tokenizer for BACI C-- source."""

import re

from .models import Token, TokenKind

LINE_SPLIT_PATTERN = re.compile(r"\r?\n")
TOKEN_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*|\d+|\S")
IDENTIFIER_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def split_lines(text: str) -> list[str]:
    """Split text into logical lines; `\\n` and `\\r\\n` are equivalent."""
    return LINE_SPLIT_PATTERN.split(text)


def token_kind(text: str) -> TokenKind:
    if text.isdigit():
        return TokenKind.NUMBER
    if IDENTIFIER_PATTERN.fullmatch(text):
        return TokenKind.IDENTIFIER
    return TokenKind.PUNCTUATION


class Scanner:
    """Splits source into identifier, number and punctuation tokens."""

    def scan(self, text: str) -> list[Token]:
        tokens: list[Token] = []
        for line_no, line in enumerate(split_lines(text)):
            tokens.extend(self.scan_line(line, line_no))
        return tokens

    def scan_line(self, line: str, line_no: int) -> list[Token]:
        """
        Tokenize one line.

        The column of each token is found by searching forward from the end of
        the previous token, so repeated substrings get increasing columns.
        """
        tokens: list[Token] = []
        offset = 0
        for word in TOKEN_PATTERN.findall(line):
            col = line.find(word, offset)
            offset = col + len(word)
            tokens.append(Token(kind=token_kind(word), text=word, line=line_no, column=col))
        return tokens
