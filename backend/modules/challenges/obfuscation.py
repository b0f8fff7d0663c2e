"""
Challenge problem generation and text obfuscation.

Problems are small lobster-themed arithmetic questions. The statement
is run through an Obfuscator so that it is easy for a language model to
read and awkward for a naive scraper; digits are never altered, so the
problem stays solvable.
"""

import random
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import NamedTuple, Optional, Protocol, runtime_checkable

OPERATIONS = ("+", "-", "*")

TEMPLATES = {
    "+": "A lobster finds {a} pearls and then {b} more, what's the total?",
    "-": "A lobster had {a} shells but lost {b}, how many are left?",
    "*": "If {a} lobsters eat {b} fish each, how many fish total?",
}

NOISE_SYMBOLS = "]^-/["

_CENTS = Decimal("0.01")


class Problem(NamedTuple):
    """A clean problem statement and its formatted answer."""

    text: str
    answer: str


@runtime_checkable
class Obfuscator(Protocol):
    """Turns a clean problem statement into the text shown to the agent."""

    def obfuscate(self, text: str) -> str: ...


class PlainObfuscator:
    """Leaves the statement untouched."""

    def obfuscate(self, text: str) -> str:
        return text


class NoisyCaseObfuscator:
    """
    Alternates letter case and sprinkles noise symbols after letters.

    "A lobster finds 3 pearls" -> "A lO^bSt-Er fInDs 3 pE^aR[lS"
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        noise_rate: float = 0.25,
        symbols: str = NOISE_SYMBOLS,
    ):
        self._rng = rng or random.Random()
        self._noise_rate = noise_rate
        self._symbols = symbols

    def obfuscate(self, text: str) -> str:
        out = []
        upper = False
        for index, char in enumerate(text):
            if not char.isalpha():
                out.append(char)
                continue

            out.append(char.upper() if upper else char.lower())
            upper = not upper

            following = text[index + 1] if index + 1 < len(text) else ""
            if following.isalpha() and self._rng.random() < self._noise_rate:
                out.append(self._rng.choice(self._symbols))
        return "".join(out)


def format_answer(value: int) -> str:
    """Canonical answer form: two decimal places."""
    return f"{value:.2f}"


def generate_problem(rng: Optional[random.Random] = None) -> Problem:
    """
    Draw a random problem: first operand 1..20, second 1..10.

    Subtraction can go negative; the answer is whatever the arithmetic says.
    """
    rng = rng or random.Random()
    op = rng.choice(OPERATIONS)
    a = rng.randint(1, 20)
    b = rng.randint(1, 10)

    if op == "+":
        value = a + b
    elif op == "-":
        value = a - b
    else:
        value = a * b

    return Problem(text=TEMPLATES[op].format(a=a, b=b), answer=format_answer(value))


def normalize_answer(raw: str) -> str:
    """
    Normalize a submitted answer to "N.NN".

    Returns an empty string for anything that isn't a finite number, so it
    never matches a stored answer.
    """
    try:
        value = Decimal(str(raw).strip())
        if not value.is_finite():
            return ""
        value = value.quantize(_CENTS, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        return ""

    if value == 0:
        value = abs(value)
    return f"{value:.2f}"
