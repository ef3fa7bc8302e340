class WebhookError(Exception):
    """Base class for errors that end an admission request.

    `uid` is the request uid when the envelope was decoded far enough to
    know it.
    """

    status_code = 500

    def __init__(self, message, uid=None):
        super().__init__(message)
        self.uid = uid


class RequestError(WebhookError):
    """The admission request can't be mutated as sent."""

    status_code = 400


class DecodeError(RequestError):
    pass


class ResourceTypeError(RequestError):
    pass


class PreconditionError(RequestError):
    pass


class InvalidNameError(RequestError):
    def __init__(self, errors, uid=None):
        super().__init__(f"invalid pod name: {'; '.join(errors)}", uid=uid)
        self.errors = list(errors)


class ApplicationError(WebhookError):
    status_code = 500


class PatchError(ApplicationError):
    pass
