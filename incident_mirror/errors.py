# error taxonomy for a mirror run.
#
#   ConfigError      → bad environment, nothing started
#   FeedError        → incident list unavailable, pass aborted before any work
#   StoreError       → mapping file unusable, whole run aborted
#   AlreadyRunning   → another run holds the lock, this one does nothing
#   MessagingError   → the messaging platform failed; fatal for one incident only
#   MessageNotFound  → the stored message is gone; the reconciler recreates it


class MirrorError(Exception):
    pass


class ConfigError(MirrorError):
    pass


class FeedError(MirrorError):
    pass


class StoreError(MirrorError):
    pass


class AlreadyRunning(MirrorError):
    pass


class MessagingError(MirrorError):
    pass


class MessageNotFound(MessagingError):
    def __init__(self, message_id: str) -> None:
        super().__init__(f"message {message_id} not found")
        self.message_id = message_id
