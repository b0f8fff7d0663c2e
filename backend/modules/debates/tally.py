"""
Vote tally and outcome resolution.

tally() is pure and deterministic so it can back both the live preview
and the final outcome. resolve_winner() applies the completion policy.
"""

from typing import Optional

from .models import Side, TallyResult, TallyWinner
from .exceptions import TieRequiresWinnerError, WinnerContradictsTallyError


def tally(for_votes: int, against_votes: int) -> TallyResult:
    """
    Aggregate vote counts.

    With no votes both percentages are 50.0 and there is no winner.
    A tie is only reported when at least one vote was cast.
    """
    if for_votes < 0 or against_votes < 0:
        raise ValueError("Vote counts cannot be negative")

    total = for_votes + against_votes

    if total == 0:
        return TallyResult(
            for_votes=0,
            against_votes=0,
            total_votes=0,
            for_percentage=50.0,
            against_percentage=50.0,
            winner=None,
            margin=0,
        )

    if for_votes > against_votes:
        winner = TallyWinner.FOR
    elif against_votes > for_votes:
        winner = TallyWinner.AGAINST
    else:
        winner = TallyWinner.TIE

    for_percentage = round(for_votes * 100 / total, 2)

    return TallyResult(
        for_votes=for_votes,
        against_votes=against_votes,
        total_votes=total,
        for_percentage=for_percentage,
        against_percentage=round(100 - for_percentage, 2),
        winner=winner,
        margin=abs(for_votes - against_votes),
    )


def resolve_winner(
    debate_id: str,
    result: TallyResult,
    supplied: Optional[Side] = None,
    allow_override: bool = False,
) -> Side:
    """
    Decide the winning side at completion time.

    Args:
        debate_id: Debate being completed (for error details)
        result: Current tally
        supplied: Winner chosen by the administrator, if any
        allow_override: Accept a supplied winner that disagrees with a decisive tally

    Returns:
        The winning side

    Raises:
        TieRequiresWinnerError: Tied or empty tally and no supplied winner
        WinnerContradictsTallyError: Supplied winner disagrees with a decisive tally
    """
    decisive = result.winner in (TallyWinner.FOR, TallyWinner.AGAINST)

    if supplied is None:
        if not decisive:
            raise TieRequiresWinnerError(debate_id, result.for_votes, result.against_votes)
        return Side(result.winner.value)

    if decisive and supplied.value != result.winner.value and not allow_override:
        raise WinnerContradictsTallyError(debate_id, supplied.value, result.winner.value)

    return supplied
