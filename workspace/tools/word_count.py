from typing import Literal


def run(text: str, unique: bool = False, case: Literal["keep", "lower"] = "keep"):
    """Count the words in a piece of text.

    Args:
        text: The text to analyse
        unique: Count each distinct word once
        case: Whether words are lowercased before counting
    """
    words = text.split()
    if case == "lower":
        words = [w.lower() for w in words]
    if unique:
        words = list(dict.fromkeys(words))
    return {"words": len(words)}
