class DraftError(Exception):
    pass


class InvalidArgumentError(DraftError, TypeError):
    pass


class DoubleReturnError(DraftError):
    pass


class AlreadyFinalizedError(DraftError):
    pass


class CyclicReferenceError(DraftError):
    pass


class RevokedDraftError(DraftError):
    pass


class PatchError(DraftError):
    pass


class PatchPathError(PatchError):
    pass


class UnknownPatchOpError(PatchError, ValueError):

    def __init__(self, op):
        super().__init__(f"unsupported patch operation: {op!r}")
        self.op = op
