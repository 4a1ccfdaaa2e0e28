"""Interactive yes/no confirmation."""

from rich.console import Console

console = Console()

YES_ANSWERS = {"y", "yes"}
NO_ANSWERS = {"n", "no"}


def parse_answer(answer: str) -> bool | None:
    """Map an answer to True/False, or None when it is neither yes nor no."""
    answer = answer.strip().lower()
    if answer in YES_ANSWERS:
        return True
    if answer in NO_ANSWERS:
        return False
    return None


def ask_user(message: str = "Ok to continue?") -> bool:
    """Ask until the user answers yes or no. End of input counts as no."""
    while True:
        try:
            answer = console.input(f"{message} (y/n): ")
        except EOFError:
            return False
        result = parse_answer(answer)
        if result is not None:
            return result
