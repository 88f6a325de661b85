"""Exceptions raised by the ledger services. Routers map them onto HTTP errors."""


class LedgerError(Exception):
    pass


class NotFoundError(LedgerError):
    pass


class EpisodeOutOfRangeError(LedgerError, ValueError):
    """Scoring or recalculation asked for an episode outside 1..active_episode."""

    def __init__(self, episode: int, active_episode: int):
        self.episode = episode
        self.active_episode = active_episode
        super().__init__(
            f"Episode {episode} is outside the scorable range 1..{active_episode}"
        )


class QuestionNotScoredError(LedgerError):
    pass


class InvalidAnswerError(LedgerError, ValueError):
    pass
