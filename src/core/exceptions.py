"""Error taxonomy for the dispatch service"""


class DispatchError(Exception):
    """Base class for all dispatch errors"""


class ClassifierFailure(DispatchError):
    """Intent classifier failed or returned an unusable payload"""


class AnswerServiceFailure(DispatchError):
    """Open-domain answer service failed or returned an unusable payload"""


class StoreFailure(DispatchError):
    """Durable record store is unavailable or a read/write failed"""


class RecordCipherError(DispatchError):
    """A persisted blob could not be unwrapped with the shared key"""
