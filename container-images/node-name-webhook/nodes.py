import logging
import re

from models import Pod

LOG = logging.getLogger(__name__)

# Field selector key that pins a pod to a single node by name. This is what
# the DaemonSet controller writes into the pods it creates.
NODE_NAME_FIELD = "metadata.name"


def extract_node_name(pod: Pod) -> str | None:
    """Return the node the pod is bound or pinned to, or None.

    A direct binding (spec.nodeName) wins. Otherwise the first
    required node affinity matchFields rule of the form
    `metadata.name In [<node>]` is used, scanning terms and then the rules
    inside each term in order. Rules with several values, or any other
    operator, don't identify a single node and are skipped.
    """
    spec = pod.spec
    if spec.nodeName:
        return spec.nodeName

    if spec.affinity is None or spec.affinity.nodeAffinity is None:
        return None

    required = spec.affinity.nodeAffinity.requiredDuringSchedulingIgnoredDuringExecution
    if required is None or not required.nodeSelectorTerms:
        return None

    for term in required.nodeSelectorTerms:
        if term is None:
            continue
        for rule in term.matchFields or []:
            if rule is None or rule.key != NODE_NAME_FIELD:
                continue
            if rule.operator != "In":
                continue
            if len(rule.values or []) != 1:
                continue
            return rule.values[0]

    return None


def filter_node_name(node_name: str, pattern: re.Pattern | None = None) -> str | None:
    """Limit the part of the node name that ends up in the pod name.

    With no pattern the node name is returned as is. With a pattern, the
    first capture group of the first match is used (or the whole match if
    the pattern has no groups). A pattern that doesn't match, or that
    selects nothing, returns None.
    """
    if pattern is None:
        return node_name

    match = pattern.search(node_name)
    if match is None:
        LOG.debug("node name %s does not match %s", node_name, pattern.pattern)
        return None

    selected = match.group(1) if pattern.groups else match.group(0)
    return selected or None
