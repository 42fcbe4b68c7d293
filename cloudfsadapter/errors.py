"""
Errors for the object storage adapter
"""

class IOSError(OSError):
    """
    Error reported by the object storage.

    The errno matches the HTTP status of the failed request (ENOENT for a
    missing object, EACCES when forbidden, etc) so callers can handle them
    like the errors of a regular filesystem.
    """

class PartialRenameError(IOSError):
    """
    A rename copied the object but could not remove the source.

    Both the source and the destination exist after this error.
    """
    def __init__(self, errno, msg, source=None, destination=None):
        IOSError.__init__(self, errno, msg)
        self.source = source
        self.destination = destination
