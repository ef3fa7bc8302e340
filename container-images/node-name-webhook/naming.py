import re

# Kubernetes object name rules, with messages worded like
# k8s.io/apimachinery/pkg/util/validation.
DNS1123_LABEL_FMT = "[a-z0-9]([-a-z0-9]*[a-z0-9])?"
DNS1123_SUBDOMAIN_FMT = DNS1123_LABEL_FMT + r"(\." + DNS1123_LABEL_FMT + ")*"
DNS1123_SUBDOMAIN_MAX_LENGTH = 253
DNS1123_SUBDOMAIN_ERROR_MSG = (
    "a lowercase RFC 1123 subdomain must consist of lower case alphanumeric "
    "characters, '-' or '.', and must start and end with an alphanumeric character"
)

dns1123_subdomain_re = re.compile(DNS1123_SUBDOMAIN_FMT)


def max_len_error(length):
    return f"must be no more than {length} characters"


def regex_error(msg, fmt, *examples):
    if not examples:
        return f"{msg} (regex used for validation is '{fmt}')"

    msg += " (e.g. " + " or ".join(f"'{example}'" for example in examples)
    return msg + f", regex used for validation is '{fmt}')"


def is_dns1123_subdomain(value: str) -> list[str]:
    """Return the ways `value` fails to be a valid object name.

    An empty list means the value is valid.
    """
    errors = []
    if len(value) > DNS1123_SUBDOMAIN_MAX_LENGTH:
        errors.append(max_len_error(DNS1123_SUBDOMAIN_MAX_LENGTH))
    if not dns1123_subdomain_re.fullmatch(value):
        errors.append(
            regex_error(DNS1123_SUBDOMAIN_ERROR_MSG, DNS1123_SUBDOMAIN_FMT, "example.com")
        )
    return errors


def sanitize_node_name(node_name: str) -> str:
    # Node names can carry underscores, object names can't.
    return node_name.replace("_", "-")


def compose_pod_name(generate_name: str, node_name: str) -> str:
    return generate_name + sanitize_node_name(node_name)
