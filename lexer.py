import string

from diagnostics import Diagnostic, Span, syntax_message


# identifiers and numbers are ASCII only
IDENT_START = string.ascii_letters + "_"
IDENT_CHARS = IDENT_START + string.digits
DIGITS = string.digits

KEYWORDS = {
    "fold": "FOLD",
    "fn": "FN",
    "if": "IF",
    "elif": "ELIF",
    "else": "ELSE",
}

SINGLE_CHAR_TOKENS = {
    "+": "PLUS",
    "-": "MINUS",
    "*": "STAR",
    "/": "SLASH",
    "^": "CARET",
    "=": "EQ",
    ",": "COMMA",
    ";": "SEMI",
    "(": "LPAREN",
    ")": "RPAREN",
    "{": "LBRACE",
    "}": "RBRACE",
    "[": "LBRACKET",
    "]": "RBRACKET",
}

# How each token type is shown in "Expected ..." messages.
TOKEN_DISPLAY = {
    "IDENT": "identifier",
    "NUMBER": "number",
    "STRING": "string",
    "FOLD": "'fold'",
    "FN": "'fn'",
    "IF": "'if'",
    "ELIF": "'elif'",
    "ELSE": "'else'",
    "LT": "'<'",
    "GT": "'>'",
    "LTE": "'<='",
    "GTE": "'>='",
    "EOF": "end of input",
}
for _ch, _type in SINGLE_CHAR_TOKENS.items():
    TOKEN_DISPLAY[_type] = f"'{_ch}'"


def display_token_type(token_type):
    return TOKEN_DISPLAY.get(token_type, token_type)


class Token:
    def __init__(self, type, value=None, line=1, column=1, start=0, end=0):
        self.type = type
        self.value = value
        self.line = line
        self.column = column
        self.start = start
        self.end = end

    @property
    def span(self):
        return Span(self.start, self.end, self.line, self.column)

    def describe(self):
        if self.type == "EOF":
            return "end of input"
        if self.type in ("IDENT", "NUMBER"):
            return f"'{self.value}'"
        if self.type == "STRING":
            return f'"{self.value}"'
        return display_token_type(self.type)

    def __repr__(self):
        if self.value is not None:
            return f"{self.type}({self.value})"
        return f"{self.type}"


class Lexer:
    def __init__(self, text):
        self.text = text
        self.pos = 0
        self.current_char = text[0] if text else None
        self.line = 1
        self.column = 1
        self.diagnostics = []
        # set when the rest of the input cannot be tokenized sensibly
        self.fatal = False

    def advance(self):
        if self.current_char == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        self.pos += 1
        if self.pos >= len(self.text):
            self.current_char = None
        else:
            self.current_char = self.text[self.pos]

    def peek(self):
        nxt = self.pos + 1
        if nxt >= len(self.text):
            return None
        return self.text[nxt]

    def skip_whitespace(self):
        while self.current_char and self.current_char in " \t\r\n":
            self.advance()

    def skip_comment(self):
        while self.current_char and self.current_char != "\n":
            self.advance()

    def error(self, expected, found, start, line, column):
        span = Span(start, max(self.pos, start + 1), line, column)
        self.diagnostics.append(
            Diagnostic(syntax_message(expected, found), span=span, expected=expected, found=found)
        )

    def make(self, type, value, start, line, column):
        return Token(type, value, line=line, column=column, start=start, end=self.pos)

    def read_identifier(self):
        start, line, col = self.pos, self.line, self.column
        result = ""
        while self.current_char and self.current_char in IDENT_CHARS:
            result += self.current_char
            self.advance()
        if result in KEYWORDS:
            return self.make(KEYWORDS[result], None, start, line, col)
        return self.make("IDENT", result, start, line, col)

    def read_number(self):
        # integer digits are mandatory; ".digits" is optional
        start, line, col = self.pos, self.line, self.column
        integer = ""
        while self.current_char and self.current_char in DIGITS:
            integer += self.current_char
            self.advance()

        fraction = None
        nxt = self.peek()
        if self.current_char == "." and nxt is not None and nxt in DIGITS:
            self.advance()  # consume '.'
            fraction = ""
            while self.current_char and self.current_char in DIGITS:
                fraction += self.current_char
                self.advance()

        return self.make("NUMBER", (integer, fraction), start, line, col)

    def read_string(self):
        start, line, col = self.pos, self.line, self.column
        self.advance()  # skip opening quote
        result = ""

        while self.current_char and self.current_char != '"':
            if self.current_char == "\\":
                self.advance()
                if self.current_char is None:
                    break
                if self.current_char == "n":
                    result += "\n"
                else:
                    # \" and \\ (and anything else) are kept literally
                    result += self.current_char
                self.advance()
                continue
            result += self.current_char
            self.advance()

        if self.current_char != '"':
            self.error(("'\"'",), "end of input", start, line, col)
            self.fatal = True
            return self.make("STRING", result, start, line, col)

        self.advance()  # skip closing quote
        return self.make("STRING", result, start, line, col)

    def get_next_token(self):
        while self.current_char:

            if self.current_char in " \t\r\n":
                self.skip_whitespace()
                continue

            if self.current_char == "#":
                self.skip_comment()
                continue

            if self.current_char in IDENT_START:
                return self.read_identifier()

            if self.current_char in DIGITS:
                return self.read_number()

            if self.current_char == '"':
                return self.read_string()

            start, line, col = self.pos, self.line, self.column

            # <=, <
            if self.current_char == "<":
                self.advance()
                if self.current_char == "=":
                    self.advance()
                    return self.make("LTE", None, start, line, col)
                return self.make("LT", None, start, line, col)

            # >=, >
            if self.current_char == ">":
                self.advance()
                if self.current_char == "=":
                    self.advance()
                    return self.make("GTE", None, start, line, col)
                return self.make("GT", None, start, line, col)

            if self.current_char in SINGLE_CHAR_TOKENS:
                tok_type = SINGLE_CHAR_TOKENS[self.current_char]
                self.advance()
                return self.make(tok_type, None, start, line, col)

            # unknown character: report it, skip it, keep going
            bad = self.current_char
            self.advance()
            self.error((), f"'{bad}'", start, line, col)

        return Token("EOF", line=self.line, column=self.column, start=self.pos, end=self.pos)

    def tokenize(self):
        tokens = []
        while True:
            tok = self.get_next_token()
            tokens.append(tok)
            if tok.type == "EOF":
                return tokens
