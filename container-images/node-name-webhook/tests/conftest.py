import pytest

import mutate


POD_RESOURCE = {"group": "", "version": "v1", "resource": "pods"}


def make_pod(generate_name="worker-", node_name=None, affinity=None, name=""):
    spec = {"containers": [{"name": "app", "image": "busybox"}]}
    if node_name is not None:
        spec["nodeName"] = node_name
    if affinity is not None:
        spec["affinity"] = affinity
    return {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {
            "name": name,
            "generateName": generate_name,
            "namespace": "default",
        },
        "spec": spec,
    }


def node_affinity(*terms):
    return {
        "nodeAffinity": {
            "requiredDuringSchedulingIgnoredDuringExecution": {
                "nodeSelectorTerms": list(terms),
            }
        }
    }


def match_fields(*rules):
    return {
        "matchFields": [
            {"key": key, "operator": operator, "values": values}
            for key, operator, values in rules
        ]
    }


def make_review(pod, uid="1234", resource=POD_RESOURCE):
    return {
        "apiVersion": "admission.k8s.io/v1",
        "kind": "AdmissionReview",
        "request": {
            "uid": uid,
            "kind": {"group": "", "version": "v1", "kind": "Pod"},
            "resource": resource,
            "namespace": "default",
            "operation": "CREATE",
            "object": pod,
        },
    }


@pytest.fixture()
def app():
    app = mutate.create_app(
        TESTING=True,
        HOSTNAME="test-host",
    )
    yield app


@pytest.fixture()
def client(app):
    return app.test_client()
