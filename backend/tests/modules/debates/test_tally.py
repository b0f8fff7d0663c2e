"""Tests for vote tally and winner resolution."""

import pytest

from modules.debates.exceptions import TieRequiresWinnerError, WinnerContradictsTallyError
from modules.debates.models import Side, TallyWinner
from modules.debates.tally import resolve_winner, tally


class TestTally:
    def test_majority_for(self):
        """6 for / 4 against should be a 60/40 win for 'for'."""
        result = tally(6, 4)

        assert result.total_votes == 10
        assert result.for_percentage == 60.0
        assert result.against_percentage == 40.0
        assert result.winner == TallyWinner.FOR
        assert result.margin == 2

    def test_majority_against(self):
        """More against votes should make 'against' the winner."""
        result = tally(1, 3)
        assert result.winner == TallyWinner.AGAINST
        assert result.against_percentage == 75.0

    def test_no_votes(self):
        """With no votes the split is 50/50 and there is no winner."""
        result = tally(0, 0)

        assert result.total_votes == 0
        assert result.for_percentage == 50.0
        assert result.against_percentage == 50.0
        assert result.winner is None
        assert result.margin == 0

    def test_tie(self):
        """Equal non-zero counts should be a tie."""
        result = tally(3, 3)
        assert result.winner == TallyWinner.TIE
        assert result.for_percentage == 50.0

    def test_percentages_sum_to_100(self):
        """Rounded percentages should still add up to 100."""
        result = tally(1, 2)
        assert result.for_percentage == 33.33
        assert result.for_percentage + result.against_percentage == pytest.approx(100.0)

    def test_negative_counts_rejected(self):
        """Negative counts are a programming error."""
        with pytest.raises(ValueError):
            tally(-1, 0)


class TestResolveWinner:
    def test_uses_tally_leader(self):
        """Without a supplied winner the tally decides."""
        assert resolve_winner("d1", tally(6, 4)) == Side.FOR

    def test_tie_requires_supplied_winner(self):
        """A tie without a supplied winner should be rejected."""
        with pytest.raises(TieRequiresWinnerError):
            resolve_winner("d1", tally(2, 2))

    def test_no_votes_requires_supplied_winner(self):
        """An empty tally without a supplied winner should be rejected."""
        with pytest.raises(TieRequiresWinnerError):
            resolve_winner("d1", tally(0, 0))

    def test_tie_accepts_supplied_winner(self):
        """The administrator can break a tie."""
        assert resolve_winner("d1", tally(2, 2), supplied=Side.AGAINST) == Side.AGAINST

    def test_supplied_winner_matching_tally(self):
        """A supplied winner that agrees with the tally is accepted."""
        assert resolve_winner("d1", tally(1, 5), supplied=Side.AGAINST) == Side.AGAINST

    def test_contradicting_winner_rejected(self):
        """A supplied winner against a decisive tally is rejected by default."""
        with pytest.raises(WinnerContradictsTallyError) as exc_info:
            resolve_winner("d1", tally(6, 4), supplied=Side.AGAINST)
        assert exc_info.value.details["tallied"] == "for"

    def test_contradicting_winner_with_override(self):
        """With override enabled the supplied winner stands."""
        result = resolve_winner("d1", tally(6, 4), supplied=Side.AGAINST, allow_override=True)
        assert result == Side.AGAINST
