import secrets

CODE_MIN = 1000
CODE_MAX = 9999


def generate_code() -> str:
    """Return a 4-digit verification code in [1000, 9999].

    Codes are not unique across requests; verification always pairs the code with the visitor id.
    """
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))
