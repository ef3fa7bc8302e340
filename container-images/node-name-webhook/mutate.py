import base64
import logging
import threading

import pydantic
from pydantic_core import PydanticSerializationError

from flask import Flask, request, jsonify, current_app

from models import (
    BaseModel,
    AdmissionRequest,
    AdmissionReview,
    AdmissionResponse,
    AdmissionReviewStatus,
    GroupVersionResource,
    Patch,
    PatchAction,
    PatchOp,
    PatchType,
    Pod,
)
from exc import (
    ApplicationError,
    DecodeError,
    InvalidNameError,
    PatchError,
    PreconditionError,
    RequestError,
    ResourceTypeError,
)
from logs import FieldLogger
from naming import compose_pod_name, is_dns1123_subdomain
from nodes import extract_node_name, filter_node_name
from settings import ENV_PREFIX, Settings

LOG = logging.getLogger(__name__)

POD_RESOURCE = GroupVersionResource(group="", version="v1", resource="pods")
NAME_PATH = "/metadata/name"


def jsonresponse():
    """Transforms the response from a view function into a JSON object."""

    def _outer(func):
        def _inner(*args, **kwargs):
            res = func(*args, **kwargs)
            if isinstance(res, BaseModel):
                return jsonify(res.model_dump(exclude_none=True))
            else:
                return jsonify(res)

        return _inner

    return _outer


class InFlight:
    """Counts requests that are being handled, so shutdown can wait for them."""

    def __init__(self):
        self._count = 0
        self._cond = threading.Condition()

    @property
    def count(self):
        with self._cond:
            return self._count

    def enter(self):
        with self._cond:
            self._count += 1

    def leave(self, *args):
        with self._cond:
            self._count -= 1
            if self._count <= 0:
                self._cond.notify_all()

    def wait_idle(self, timeout=None) -> bool:
        """Wait until no request is in flight. Returns False on timeout."""
        with self._cond:
            return self._cond.wait_for(lambda: self._count <= 0, timeout)


def decode_review(body: bytes, log: FieldLogger) -> AdmissionReview:
    try:
        review = AdmissionReview.model_validate_json(body)
    except pydantic.ValidationError as err:
        log.error("error decoding request: %s", err)
        raise DecodeError(f"error decoding request: {err}")

    if review.request is None:
        log.error("error decoding request: no request in admission review")
        raise DecodeError("error decoding request: no request in admission review")

    return review


def check_resource(req: AdmissionRequest, log: FieldLogger):
    if req.resource != POD_RESOURCE:
        log.error(
            "unexpected resource type",
            extra={"fields": {"type": req.resource.model_dump_json()}},
        )
        raise ResourceTypeError("unexpected resource type")


def decode_pod(req: AdmissionRequest, log: FieldLogger) -> Pod:
    try:
        if req.object is None:
            raise ValueError("no object in admission request")
        return Pod.model_validate(req.object)
    except (pydantic.ValidationError, ValueError) as err:
        log.error("error unmarshaling pod: %s", err)
        raise DecodeError(f"error unmarshaling pod: {err}")


def pod_name_for(pod: Pod, settings: Settings, log: FieldLogger) -> str:
    """Work out the new name for a pod, or raise a RequestError saying why
    there isn't one."""
    if not pod.metadata.generateName:
        log.error("GenerateName is empty")
        raise PreconditionError("GenerateName is empty")

    node_name = extract_node_name(pod)
    if node_name:
        node_name = filter_node_name(node_name, settings.node_regex)
    if not node_name:
        log.error("node not assigned")
        raise PreconditionError("node not assigned")

    new_name = compose_pod_name(pod.metadata.generateName, node_name)
    log = log.with_fields(**{"new-name": new_name})

    if errors := is_dns1123_subdomain(new_name):
        log.error("invalid pod name: %s", errors)
        raise InvalidNameError(errors)

    return new_name


def build_patch(new_name: str) -> Patch:
    return Patch([PatchAction(op=PatchOp.REPLACE, path=NAME_PATH, value=new_name)])


def encode_patch(patch: Patch) -> str:
    """Serialize a patch the way the admission API carries it (base64 JSON)."""
    try:
        data = patch.model_dump_json()
    except PydanticSerializationError as err:
        raise PatchError(f"could not marshal patch: {err}")

    return base64.b64encode(data.encode()).decode()


def mutate_pod_review(body: bytes, settings: Settings, log: FieldLogger) -> bytes:
    """Run one admission review through the renaming pipeline.

    Returns the serialized review with its response filled in. Any failure
    raises a WebhookError subclass; nothing is partially applied.
    """
    review = decode_review(body, log)
    req = review.request

    try:
        check_resource(req, log)
        pod = decode_pod(req, log)
        log = log.with_fields(
            namespace=pod.metadata.namespace or req.namespace or "",
            pod=pod.metadata.name,
            GenerateName=pod.metadata.generateName,
        )
        new_name = pod_name_for(pod, settings, log)
    except RequestError as err:
        err.uid = req.uid
        raise

    log = log.with_fields(**{"new-name": new_name})
    patch = build_patch(new_name)
    log.debug("patched", extra={"fields": {"patch": patch.model_dump()}})

    try:
        encoded = encode_patch(patch)
    except PatchError as err:
        log.error("could not marshal patch: %s", err)
        err.uid = req.uid
        raise

    review = AdmissionReview(
        apiVersion=review.apiVersion,
        kind=review.kind,
        request=req,
        response=AdmissionResponse(
            uid=req.uid,
            allowed=True,
            patchType=PatchType.JSONPatch,
            patch=encoded,
        ),
    )
    return review.model_dump_json(exclude_none=True).encode()


def mutate_pod():
    settings = current_app.settings
    try:
        body = mutate_pod_review(request.get_data(), settings, current_app.log)
    except RequestError as err:
        if not settings.deny_in_response:
            raise
        return deny_review(err)

    return body, 200, {"content-type": "application/json"}


@jsonresponse()
def deny_review(err):
    return AdmissionReview(
        response=AdmissionResponse(
            uid=err.uid or "",
            allowed=False,
            status=AdmissionReviewStatus(message=str(err), code=err.status_code),
        )
    )


def handle_requesterror(err):
    return str(err), err.status_code, {"content-type": "text/plain"}


def handle_applicationerror(err):
    return str(err), err.status_code, {"content-type": "text/plain"}


def health():
    return "OK", 200, {"content-type": "text/plain"}


def create_app(**config) -> Flask:
    """Use an application factory [1] to create the Flask app.

    Configuration comes from NODE_NAME_WEBHOOK_* environment variables,
    with keyword arguments taking precedence. An invalid configuration
    raises pydantic.ValidationError.

    [1]: https://flask.palletsprojects.com/en/3.0.x/patterns/appfactories/
    """

    app = Flask(__name__)
    # Values stay strings; Settings does the type conversion.
    app.config.from_prefixed_env(ENV_PREFIX, loads=str)
    if config:
        app.config.update(config)

    app.settings = Settings.from_config(app.config)
    app.log = FieldLogger(LOG, {"host": app.settings.hostname})
    app.inflight = InFlight()

    app.before_request(app.inflight.enter)
    app.teardown_request(app.inflight.leave)
    app.errorhandler(RequestError)(handle_requesterror)
    app.errorhandler(ApplicationError)(handle_applicationerror)
    app.add_url_rule("/healthz", view_func=health)
    app.add_url_rule("/mutate-pod", view_func=mutate_pod, methods=["POST"])

    return app
