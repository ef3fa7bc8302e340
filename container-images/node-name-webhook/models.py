import base64
from typing import Any
from pydantic import (
    BaseModel,
    ConfigDict,
    RootModel,
    model_validator,
    field_validator,
)
from enum import StrEnum


class ApiVersion(StrEnum):
    V1 = "admission.k8s.io/v1"


class PatchType(StrEnum):
    JSONPatch = "JSONPatch"


class PatchOp(StrEnum):
    REPLACE = "replace"


class PatchAction(BaseModel):
    op: PatchOp
    path: str
    value: Any


# https://jsonpatch.com/
Patch = RootModel[list[PatchAction]]


# https://kubernetes.io/docs/reference/generated/kubernetes-api/v1.30/#status-v1-meta
class AdmissionReviewStatus(BaseModel):
    message: str
    code: int | None = None


# https://kubernetes.io/docs/reference/generated/kubernetes-api/v1.30/#groupversionresource-v1-meta
class GroupVersionResource(BaseModel):
    model_config = ConfigDict(frozen=True)

    group: str = ""
    version: str = ""
    resource: str = ""


# https://kubernetes.io/docs/reference/config-api/apiserver-admission.v1/#admission-k8s-io-v1-AdmissionResponse
class AdmissionResponse(BaseModel):
    allowed: bool
    status: AdmissionReviewStatus | None = None
    uid: str
    patchType: PatchType | None = None
    patch: str | None = None

    @field_validator("patch", mode="before")
    @classmethod
    def validate_patch(cls, val):
        if isinstance(val, (str, bytes)):
            # Make sure the base64 string contains valid data.
            Patch.model_validate_json(base64.b64decode(val))
        return val

    @model_validator(mode="after")
    def validate_model(self):
        if self.patch and not self.patchType:
            raise ValueError("missing patchType field")
        if self.patchType and not self.patch:
            raise ValueError(f"patchType is {self.patchType} but there is no patch")

        return self


# https://kubernetes.io/docs/reference/config-api/apiserver-admission.v1/#admission-k8s-io-v1-AdmissionRequest
class AdmissionRequest(BaseModel):
    # Fields we don't look at are kept so the request can be echoed back.
    model_config = ConfigDict(extra="allow")

    uid: str = ""
    resource: GroupVersionResource = GroupVersionResource()
    name: str | None = None
    namespace: str | None = None
    object: Any = None


# https://kubernetes.io/docs/reference/config-api/apiserver-admission.v1/#admission-k8s-io-v1-AdmissionReview
class AdmissionReview(BaseModel):
    apiVersion: str = ApiVersion.V1
    kind: str = "AdmissionReview"
    request: AdmissionRequest | None = None
    response: AdmissionResponse | None = None

    @model_validator(mode="after")
    def validate_model(self):
        if not (self.request or self.response):
            raise ValueError("must contain a request or a response")

        return self


# Only the parts of a Pod (core/v1) that are needed to derive its name.
# https://kubernetes.io/docs/reference/generated/kubernetes-api/v1.30/#pod-v1-core
#
# A JSON null decodes like an absent field, as the API server's own decoder
# does: "" for strings, the default for nested objects.


def null_to_empty(val):
    return "" if val is None else val


class Metadata(BaseModel):
    name: str = ""
    generateName: str = ""
    namespace: str = ""

    @field_validator("name", "generateName", "namespace", mode="before")
    @classmethod
    def validate_strings(cls, val):
        return null_to_empty(val)


# https://kubernetes.io/docs/reference/generated/kubernetes-api/v1.30/#nodeselectorrequirement-v1-core
class NodeSelectorRequirement(BaseModel):
    key: str = ""
    operator: str = ""
    values: list[str] | None = None

    @field_validator("key", "operator", mode="before")
    @classmethod
    def validate_strings(cls, val):
        return null_to_empty(val)


class NodeSelectorTerm(BaseModel):
    matchExpressions: list[NodeSelectorRequirement | None] | None = None
    matchFields: list[NodeSelectorRequirement | None] | None = None


class NodeSelector(BaseModel):
    nodeSelectorTerms: list[NodeSelectorTerm | None] | None = None


class NodeAffinity(BaseModel):
    requiredDuringSchedulingIgnoredDuringExecution: NodeSelector | None = None


class Affinity(BaseModel):
    nodeAffinity: NodeAffinity | None = None


class PodSpec(BaseModel):
    nodeName: str = ""
    affinity: Affinity | None = None

    @field_validator("nodeName", mode="before")
    @classmethod
    def validate_node_name(cls, val):
        return null_to_empty(val)


class Pod(BaseModel):
    metadata: Metadata = Metadata()
    spec: PodSpec = PodSpec()

    @field_validator("metadata", "spec", mode="before")
    @classmethod
    def validate_sections(cls, val):
        return {} if val is None else val
