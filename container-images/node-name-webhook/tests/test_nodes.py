import re

import pytest

from conftest import make_pod, match_fields, node_affinity
from models import Pod
from nodes import extract_node_name, filter_node_name


def pod(**kwargs):
    return Pod.model_validate(make_pod(**kwargs))


def test_node_name():
    assert extract_node_name(pod(node_name="node-1")) == "node-1"


def test_node_name_wins_over_affinity():
    p = pod(
        node_name="node-1",
        affinity=node_affinity(match_fields(("metadata.name", "In", ["node-2"]))),
    )
    assert extract_node_name(p) == "node-1"


def test_affinity():
    p = pod(affinity=node_affinity(match_fields(("metadata.name", "In", ["nodeA"]))))
    assert extract_node_name(p) == "nodeA"


@pytest.mark.parametrize(
    "affinity",
    [
        None,
        {},
        {"nodeAffinity": {}},
        {"nodeAffinity": {"requiredDuringSchedulingIgnoredDuringExecution": {}}},
        node_affinity(),
        node_affinity({}),
        node_affinity({"matchFields": []}),
    ],
)
def test_no_placement(affinity):
    assert extract_node_name(pod(affinity=affinity)) is None


@pytest.mark.parametrize(
    "rule",
    [
        ("metadata.name", "In", ["node-a", "node-b"]),
        ("metadata.name", "In", []),
        ("metadata.name", "NotIn", ["node-a"]),
        ("metadata.namespace", "In", ["node-a"]),
    ],
)
def test_rule_skipped(rule):
    p = pod(affinity=node_affinity(match_fields(rule)))
    assert extract_node_name(p) is None


def test_first_matching_rule_wins():
    p = pod(
        affinity=node_affinity(
            match_fields(
                ("metadata.name", "NotIn", ["node-x"]),
                ("metadata.name", "In", ["node-a", "node-b"]),
            ),
            match_fields(
                ("metadata.name", "In", ["node-c"]),
                ("metadata.name", "In", ["node-d"]),
            ),
            match_fields(("metadata.name", "In", ["node-e"])),
        )
    )
    assert extract_node_name(p) == "node-c"


def test_match_expressions_ignored():
    p = pod(
        affinity=node_affinity(
            {
                "matchExpressions": [
                    {
                        "key": "kubernetes.io/hostname",
                        "operator": "In",
                        "values": ["node-a"],
                    }
                ]
            }
        )
    )
    assert extract_node_name(p) is None


def test_null_values():
    p = Pod.model_validate(
        make_pod(
            affinity=node_affinity(
                {
                    "matchFields": [
                        {"key": "metadata.name", "operator": "In", "values": None}
                    ]
                }
            )
        )
    )
    assert extract_node_name(p) is None


def test_filter_without_pattern():
    assert filter_node_name("worker_01") == "worker_01"


def test_filter_default_pattern():
    assert filter_node_name("worker_01", re.compile("^(.*)$")) == "worker_01"


def test_filter_capture_group():
    pattern = re.compile(r"^([^.]+)\.")
    assert filter_node_name("node-1.example.com", pattern) == "node-1"


def test_filter_whole_match():
    assert filter_node_name("ip-10-0-0-1.ec2", re.compile(r"ip(?:-\d+)+")) == "ip-10-0-0-1"


def test_filter_no_match():
    assert filter_node_name("node-1", re.compile(r"^gpu-")) is None


def test_filter_empty_selection():
    assert filter_node_name("node-1", re.compile(r"^(x*)")) is None


def test_null_rule_skipped():
    p = pod(
        affinity=node_affinity(
            {
                "matchFields": [
                    None,
                    {"key": None, "operator": "In", "values": ["node-a"]},
                    {"key": "metadata.name", "operator": "In", "values": ["node-b"]},
                ]
            }
        )
    )
    assert extract_node_name(p) == "node-b"
