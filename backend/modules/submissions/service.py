"""
Submission orchestrator.

Coordinates eligibility, the challenge gate and storage for the three
submission kinds (join, argument, vote):

    load snapshot -> eligibility -> (issue challenge | apply)
    verify: check answer -> re-check eligibility -> consume -> apply

Expected refusals come back as SubmissionResult. StorageError is the
only exception that leaves this module.
"""

import logging
from typing import Optional

from modules.challenges.exceptions import (
    ChallengeAlreadyProcessedError,
    ChallengeExpiredError,
    IncorrectAnswerError,
)
from modules.challenges.interfaces import IChallengeService
from modules.challenges.models import (
    ArgumentPayload,
    ContentType,
    IssuedChallenge,
    VerificationChallenge,
    VotePayload,
)
from modules.debates.eligibility import (
    Eligibility,
    check_argument,
    check_join,
    check_vote,
    check_vote_change,
    validate_argument_input,
)
from modules.debates.exceptions import (
    DebateNotFoundError,
    StageNotFoundError,
    StateChangedError,
)
from modules.debates.interfaces import IDebateRepository
from modules.debates.models import (
    ArenaPolicy,
    ArgumentDraft,
    Debate,
    DebateStatus,
    Side,
    Stage,
    TallyResult,
    VoterIdentity,
)
from modules.debates.state_machine import (
    ARGUMENT_DEBATE_STATUSES,
    OPEN_DEBATE_STATUSES,
    VOTING_DEBATE_STATUSES,
    vote_debate_statuses,
)
from modules.debates.tally import tally
from shared.clock import Clock, SystemClock
from shared.exceptions import (
    ArenaError,
    ConflictError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from shared.models import Actor

from .interfaces import ISubmissionService
from .models import SubmissionOutcome, SubmissionResult

logger = logging.getLogger(__name__)


def _from_eligibility(check: Eligibility) -> SubmissionResult:
    outcome = SubmissionOutcome.INVALID if check.invalid_input else SubmissionOutcome.DENIED
    return SubmissionResult.failure(outcome, check.code, check.reason)


def _from_error(error: ArenaError) -> SubmissionResult:
    """Map an expected domain error onto a typed result."""
    if isinstance(error, IncorrectAnswerError):
        result = SubmissionResult.failure(
            SubmissionOutcome.INCORRECT_ANSWER, error.code, error.message, error.details
        )
        return result.model_copy(
            update={"failed_attempts": error.failed_attempts, "suspicious": error.suspicious}
        )

    if isinstance(error, ChallengeExpiredError):
        outcome = SubmissionOutcome.EXPIRED
    elif isinstance(error, ChallengeAlreadyProcessedError):
        outcome = SubmissionOutcome.ALREADY_PROCESSED
    elif isinstance(error, StateChangedError):
        outcome = SubmissionOutcome.STATE_CHANGED
    elif isinstance(error, NotFoundError):
        outcome = SubmissionOutcome.NOT_FOUND
    elif isinstance(error, ConflictError):
        outcome = SubmissionOutcome.CONFLICT
    elif isinstance(error, ValidationError):
        outcome = SubmissionOutcome.INVALID
    else:
        outcome = SubmissionOutcome.DENIED

    return SubmissionResult.failure(outcome, error.code, error.message, error.details)


class SubmissionService(ISubmissionService):
    """
    Submission orchestrator.

    Args:
        debates: Debate storage (participants, arguments, votes)
        challenges: Challenge gate
        clock: Time source for deadlines and the daily cap
        policy: Arena rules
    """

    def __init__(
        self,
        debates: IDebateRepository,
        challenges: IChallengeService,
        clock: Optional[Clock] = None,
        policy: Optional[ArenaPolicy] = None,
    ):
        self._repo = debates
        self._challenges = challenges
        self._clock = clock or SystemClock()
        self._policy = policy or ArenaPolicy()

    # -------------------------------------------------------------------------
    # Join
    # -------------------------------------------------------------------------

    async def join_debate(self, actor: Actor, debate_id: str, side: Side) -> SubmissionResult:
        try:
            debate = self._load_debate(debate_id)
            check = check_join(debate, self._repo.list_participants(debate_id), actor, side)
            if not check.allowed:
                logger.debug(f"Join denied for {actor.id} on {debate_id}: {check.code}")
                return _from_eligibility(check)

            participant = self._repo.add_participant(debate_id, actor.id, side, OPEN_DEBATE_STATUSES)
            logger.info(f"Agent {actor.id} joined debate {debate_id} on side {side.value}")

            if debate.status == DebateStatus.PENDING:
                self._activate_on_first_join(debate_id)

            return SubmissionResult.ok(side=participant.side.value)
        except StorageError:
            raise
        except ConflictError as e:
            logger.warning(f"Join race lost for {actor.id} on {debate_id}: {e.message}")
            return _from_error(e)
        except ArenaError as e:
            return _from_error(e)

    def _activate_on_first_join(self, debate_id: str) -> None:
        try:
            self._repo.transition_debate(debate_id, DebateStatus.PENDING, DebateStatus.ACTIVE)
            logger.info(f"Debate {debate_id}: pending -> active")
        except StateChangedError:
            # Another join already activated it
            pass

    # -------------------------------------------------------------------------
    # Arguments
    # -------------------------------------------------------------------------

    async def submit_argument(
        self,
        actor: Actor,
        debate_id: str,
        stage_id: str,
        content: str,
        model: str,
    ) -> SubmissionResult:
        try:
            valid = validate_argument_input(content, model, self._policy)
            if not valid.allowed:
                return _from_eligibility(valid)

            debate = self._load_debate(debate_id)
            stage = self._load_stage(debate_id, stage_id)
            check, side = self._argument_eligibility(actor, debate, stage)
            if not check.allowed:
                logger.debug(f"Argument denied for {actor.id} on {debate_id}: {check.code}")
                return _from_eligibility(check)

            payload = ArgumentPayload(
                debate_id=debate_id,
                stage_id=stage_id,
                content=content.strip(),
                model=model.strip(),
            )

            if self._challenges.requires_verification(actor, ContentType.ARGUMENT):
                challenge = await self._challenges.issue(
                    actor.id, ContentType.ARGUMENT, payload.model_dump()
                )
                return SubmissionResult.pending(IssuedChallenge.from_challenge(challenge))

            return self._publish_argument(actor, payload, side)
        except StorageError:
            raise
        except ArenaError as e:
            return _from_error(e)

    def _argument_eligibility(
        self,
        actor: Actor,
        debate: Debate,
        stage: Stage,
    ) -> tuple[Eligibility, Optional[Side]]:
        participant = next(
            (p for p in self._repo.list_participants(debate.id) if p.agent_id == actor.id),
            None,
        )
        agent_arguments = self._repo.list_arguments(debate.id, agent_id=actor.id)
        check = check_argument(
            debate, stage, participant, agent_arguments, actor, self._clock.now()
        )
        return check, participant.side if participant else None

    def _publish_argument(self, actor: Actor, payload: ArgumentPayload, side: Side) -> SubmissionResult:
        draft = ArgumentDraft(
            debate_id=payload.debate_id,
            stage_id=payload.stage_id,
            agent_id=actor.id,
            side=side,
            content=payload.content,
            model=payload.model,
            created_at=self._clock.now(),
        )
        try:
            argument = self._repo.publish_argument(draft, ARGUMENT_DEBATE_STATUSES)
        except ConflictError as e:
            logger.warning(f"Argument race lost for {actor.id} on {payload.debate_id}: {e.message}")
            return _from_error(e)

        logger.info(
            f"Published argument {argument.id} in debate {payload.debate_id} "
            f"({side.value} #{argument.argument_order})"
        )
        return SubmissionResult.published(ContentType.ARGUMENT, argument.id)

    # -------------------------------------------------------------------------
    # Verification
    # -------------------------------------------------------------------------

    async def verify(self, actor: Actor, verification_code: str, answer: str) -> SubmissionResult:
        try:
            challenge = await self._challenges.check(verification_code, answer, actor.id)

            if challenge.content_type == ContentType.ARGUMENT:
                return await self._verify_argument(actor, challenge)
            return await self._verify_vote(challenge)
        except StorageError:
            raise
        except ArenaError as e:
            return _from_error(e)

    async def _verify_argument(self, actor: Actor, challenge: VerificationChallenge) -> SubmissionResult:
        payload = ArgumentPayload(**challenge.payload)

        try:
            debate = self._load_debate(payload.debate_id)
            stage = self._load_stage(payload.debate_id, payload.stage_id)
        except NotFoundError as e:
            return self._state_changed(challenge, e.code, e.message)

        check, side = self._argument_eligibility(actor, debate, stage)
        if not check.allowed:
            return self._state_changed(challenge, check.code, check.reason)

        await self._challenges.consume(challenge)
        return self._publish_argument(actor, payload, side)

    async def _verify_vote(self, challenge: VerificationChallenge) -> SubmissionResult:
        payload = VotePayload(**challenge.payload)
        voter = VoterIdentity(user_id=payload.user_id, session_id=payload.session_id)

        try:
            debate = self._load_debate(payload.debate_id)
        except NotFoundError as e:
            return self._state_changed(challenge, e.code, e.message)

        check = check_vote(debate, self._repo.get_vote(debate.id, voter), self._clock.now(), self._policy)
        if not check.allowed:
            return self._state_changed(challenge, check.code, check.reason)

        await self._challenges.consume(challenge)
        result = self._record_vote(debate.id, Side(payload.side), voter)
        if result.outcome == SubmissionOutcome.OK:
            return SubmissionResult.published(ContentType.VOTE, result.content_id)
        return result

    def _state_changed(
        self,
        challenge: VerificationChallenge,
        denied_code: Optional[str],
        denied_reason: Optional[str],
    ) -> SubmissionResult:
        logger.info(
            f"Challenge {challenge.id} no longer applicable: {denied_code}"
        )
        return SubmissionResult.failure(
            SubmissionOutcome.STATE_CHANGED,
            "STATE_CHANGED",
            f"State changed since challenge issuance: {denied_reason}",
            {"denied_code": denied_code, "verification_code": challenge.verification_code},
        )

    async def cancel_challenge(self, actor: Actor, verification_code: str) -> SubmissionResult:
        try:
            await self._challenges.cancel(verification_code, actor.id)
            return SubmissionResult.ok(verification_code=verification_code)
        except StorageError:
            raise
        except ArenaError as e:
            return _from_error(e)

    # -------------------------------------------------------------------------
    # Votes
    # -------------------------------------------------------------------------

    async def cast_vote(
        self,
        debate_id: str,
        side: Side,
        voter: VoterIdentity,
        actor: Optional[Actor] = None,
    ) -> SubmissionResult:
        try:
            if voter.key is None:
                return SubmissionResult.failure(
                    SubmissionOutcome.INVALID,
                    "VOTER_IDENTITY_REQUIRED",
                    "A signed-in user or a session id is required to vote",
                )

            debate = self._load_debate(debate_id)
            check = check_vote(debate, self._repo.get_vote(debate_id, voter), self._clock.now(), self._policy)
            if not check.allowed:
                logger.debug(f"Vote denied on {debate_id}: {check.code}")
                return _from_eligibility(check)

            if self._challenges.requires_verification(actor, ContentType.VOTE):
                if actor is None:
                    return SubmissionResult.failure(
                        SubmissionOutcome.DENIED,
                        "AUTH_REQUIRED",
                        "Sign in to vote on this debate",
                    )
                payload = VotePayload(
                    debate_id=debate_id,
                    side=side.value,
                    user_id=voter.user_id,
                    session_id=voter.session_id,
                )
                challenge = await self._challenges.issue(actor.id, ContentType.VOTE, payload.model_dump())
                return SubmissionResult.pending(IssuedChallenge.from_challenge(challenge))

            return self._record_vote(debate_id, side, voter)
        except StorageError:
            raise
        except ArenaError as e:
            return _from_error(e)

    def _record_vote(self, debate_id: str, side: Side, voter: VoterIdentity) -> SubmissionResult:
        try:
            vote = self._repo.add_vote(
                debate_id, voter, side, vote_debate_statuses(self._policy.allow_late_voting)
            )
        except StateChangedError as e:
            logger.warning(f"Vote on {debate_id} refused by storage: {e.message}")
            return _from_error(e)
        except ConflictError as e:
            logger.warning(f"Duplicate vote on {debate_id} rejected by storage")
            return SubmissionResult.failure(
                SubmissionOutcome.CONFLICT,
                "ALREADY_VOTED",
                "You have already voted on this debate",
                e.details,
            )

        self._refresh_total_votes(debate_id)
        return SubmissionResult.ok(content_id=vote.id, side=side.value)

    async def change_vote(self, debate_id: str, side: Side, voter: VoterIdentity) -> SubmissionResult:
        try:
            if voter.key is None:
                return SubmissionResult.failure(
                    SubmissionOutcome.INVALID,
                    "VOTER_IDENTITY_REQUIRED",
                    "A signed-in user or a session id is required to vote",
                )

            debate = self._load_debate(debate_id)
            existing = self._repo.get_vote(debate_id, voter)
            check = check_vote_change(debate, existing, side, self._clock.now(), self._policy)
            if not check.allowed:
                return _from_eligibility(check)

            vote = self._repo.change_vote(
                debate_id, voter, existing.side, side, VOTING_DEBATE_STATUSES
            )
            self._refresh_total_votes(debate_id)
            logger.debug(f"Vote {vote.id} on {debate_id} moved to {side.value}")
            return SubmissionResult.ok(content_id=vote.id, side=side.value)
        except StorageError:
            raise
        except ArenaError as e:
            return _from_error(e)

    def _refresh_total_votes(self, debate_id: str) -> None:
        for_votes, against_votes = self._repo.count_votes(debate_id)
        self._repo.set_total_votes(debate_id, for_votes + against_votes)

    async def tally(self, debate_id: str) -> TallyResult:
        self._load_debate(debate_id)
        return tally(*self._repo.count_votes(debate_id))

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _load_debate(self, debate_id: str) -> Debate:
        debate = self._repo.get_debate(debate_id)
        if debate is None:
            raise DebateNotFoundError(debate_id)
        return debate

    def _load_stage(self, debate_id: str, stage_id: str) -> Stage:
        stage = self._repo.get_stage(stage_id)
        if stage is None or stage.debate_id != debate_id:
            raise StageNotFoundError(stage_id)
        return stage
