# Edit Monitor — edit classifier
#
# Labels one document change from its delta and the document length before
# and after. The rules are a heuristic: they approximate what an AI
# completion insert looks like, they do not model any specific tool.
#
# Rule order (first match wins):
#   1. removed text, nothing inserted           → DELETION
#   2. one char inserted, nothing removed       → HAND_WRITTEN_CHAR
#   3. inserted text is all whitespace          → WHITESPACE
#   4. two-char bracket/quote pair inserted     → AUTO_CLOSE_BRACKET
#   5. document grew with code-like content     → AUTO_COMPLETION
#   6. anything else                            → UNKNOWN (not recorded)

from .normalizer import ChangeType, EditDelta

AUTO_BRACKET_PAIRS = frozenset({"()", "[]", "{}", '""', "''", "``"})
STRUCTURAL_CHARS = frozenset("{}();")
ARROWS = ("=>", "->")


def strip_whitespace(text: str) -> str:
    return "".join(ch for ch in text if not ch.isspace())


def non_whitespace_length(text: str) -> int:
    """Number of characters in `text` that are not whitespace."""
    return sum(1 for ch in text if not ch.isspace())


def classify_change(previous_text: str, current_text: str, delta: EditDelta) -> ChangeType:
    """
    Classify a single edit.

    Pure: the result depends only on the arguments. `previous_text` and
    `current_text` are the full document before and after the edit.
    """
    inserted = delta.inserted_text
    removed = delta.removed_text

    if removed and not inserted:
        return ChangeType.DELETION

    if len(inserted) == 1 and not removed:
        return ChangeType.HAND_WRITTEN_CHAR

    if inserted and not inserted.strip():
        return ChangeType.WHITESPACE

    if len(inserted) == 2 and not removed and inserted in AUTO_BRACKET_PAIRS:
        return ChangeType.AUTO_CLOSE_BRACKET

    if inserted:
        content = strip_whitespace(inserted)
        if content and len(current_text) > len(previous_text):
            if _looks_like_completion(inserted, content):
                return ChangeType.AUTO_COMPLETION

    if not inserted and not removed:
        return ChangeType.NO_CHANGE

    return ChangeType.UNKNOWN


def _looks_like_completion(inserted: str, content: str) -> bool:
    # Code-like structure
    if len(inserted) > 3 or "\n" in inserted:
        return True
    if any(ch in STRUCTURAL_CHARS for ch in content):
        return True
    if any(arrow in inserted for arrow in ARROWS):
        return True

    # Multi-word insert
    if " " in inserted and len(inserted) > 5:
        return True

    # Substantial by size alone
    return len(content) > 2
