"""
Error taxonomy for chordbook

Document errors are raised by readers and the cache; MalformedBlock is raised
per block by the parsers and never aborts a whole document.
"""


class ChordbookError(Exception):
    """Base class for all chordbook errors"""


class ConfigError(ChordbookError):
    """Invalid or missing configuration value"""


class DocumentError(ChordbookError):
    """Problem obtaining a document"""

    def __init__(self, document_id: str, reason: str = ''):
        self.document_id = document_id
        self.reason = reason
        message = f"{document_id}: {reason}" if reason else document_id
        super().__init__(message)


class FetchFailed(DocumentError):
    """Network, timeout, auth or HTTP status failure while fetching a document"""


class EmptyDocument(DocumentError):
    """Document was fetched but has no usable body"""


class DocumentUnavailable(DocumentError):
    """Document could not be fetched and no cached copy exists"""


class MalformedBlock(ChordbookError):
    """A single block does not fit the parsing rules"""

    def __init__(self, reason: str, index: int = None):
        self.reason = reason
        self.index = index
        where = f"block {index}: " if index is not None else ''
        super().__init__(f"{where}{reason}")


class TelegramError(ChordbookError):
    """The Bot API rejected a call or could not be reached"""
