"""Error taxonomy for the session engine.

Validation and not-found errors are returned to callers as values; only
persistence errors are raised.
"""


class ScorekeeperError(Exception):
    pass


class ValidationError(ScorekeeperError):
    pass


class RosterLimitExceeded(ValidationError):
    def __init__(self, game_type):
        self.game_type = game_type
        super().__init__(game_type.limit_message())


class PromptPending(ValidationError):
    def __init__(self, label):
        self.label = label
        super().__init__(f"Confirm or cancel the pending {label} first")


class NotFoundError(ScorekeeperError):
    pass


class PlayerNotFound(NotFoundError):
    def __init__(self, player_id):
        self.player_id = player_id
        super().__init__(f"Player {player_id} not found")


class PersistenceError(ScorekeeperError):
    pass
