import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class FieldFormatter(logging.Formatter):
    """Append the fields attached by a FieldLogger as key=value pairs."""

    def format(self, record):
        msg = super().format(record)
        fields = getattr(record, "fields", None)
        if fields:
            msg += " " + " ".join(
                f"{key}={format_value(val)}" for key, val in fields.items()
            )
        return msg


def format_value(val):
    val = str(val)
    if not val or any(c.isspace() or c in '"=' for c in val):
        return '"{}"'.format(val.replace("\\", "\\\\").replace('"', '\\"'))
    return val


class FieldLogger(logging.LoggerAdapter):
    """A logger that carries structured fields.

    Each request gets its own instance; `with_fields` returns a new
    logger rather than changing this one, so loggers can be shared
    between threads.
    """

    def __init__(self, logger, fields=None):
        super().__init__(logger, dict(fields or {}))

    def with_fields(self, **fields) -> "FieldLogger":
        return FieldLogger(self.logger, {**self.extra, **fields})

    @property
    def fields(self):
        return dict(self.extra)

    def process(self, msg, kwargs):
        extra = kwargs.get("extra") or {}
        kwargs["extra"] = {**extra, "fields": {**self.extra, **extra.get("fields", {})}}
        return msg, kwargs


def configure_logging(level):
    handler = logging.StreamHandler()
    handler.setFormatter(FieldFormatter(LOG_FORMAT))
    logging.basicConfig(level=level, handlers=[handler], force=True)
