"""
cloudrelease.registry.policies - Repository Policy Documents
==============================================================

Builders for the two JSON documents attached to every release repository.
Both are compared textually with what the registry already holds (after
``canonical_policy`` strips the registry's own formatting), so the
serialization must be byte-stable: fixed key order, compact separators, and
rules ordered by the sorted build ids.

Lifecycle policy (one rule per build id that needs "ecr"):

    {"rules":[{"rulePriority":1,
               "selection":{"tagStatus":"tagged","tagPrefixList":["api-"],
                            "countType":"imageCountMoreThan","countNumber":50},
               "action":{"type":"expire"}}, ...]}

Access policy: lets any principal in the organization pull images.
"""

from __future__ import annotations

import json
from typing import Any, Iterable

DEFAULT_IMAGE_RETENTION_COUNT = 50

PULL_ACTIONS = (
    "ecr:BatchCheckLayerAvailability",
    "ecr:BatchGetImage",
    "ecr:GetDownloadUrlForLayer",
)


def _serialize(document: dict[str, Any]) -> str:
    return json.dumps(document, separators=(",", ":"), ensure_ascii=False)


def canonical_policy(text: str) -> str:
    """Re-serialize a policy read back from the registry in compact form.

    The registry re-renders stored documents with its own whitespace, so
    remote text is normalized before it is compared with a built policy.
    Text that is not a JSON object is returned unchanged and therefore
    never matches.
    """
    if not text:
        return ""
    try:
        document = json.loads(text)
    except ValueError:
        return text
    if not isinstance(document, dict):
        return text
    return _serialize(document)


def lifecycle_rules(
    build_ids: Iterable[str],
    count: int = DEFAULT_IMAGE_RETENTION_COUNT,
) -> list[dict[str, Any]]:
    """One expiry rule per build id; priorities follow the sorted ids, from 1."""
    return [
        {
            "rulePriority": priority,
            "selection": {
                "tagStatus": "tagged",
                "tagPrefixList": [f"{build_id}-"],
                "countType": "imageCountMoreThan",
                "countNumber": count,
            },
            "action": {"type": "expire"},
        }
        for priority, build_id in enumerate(sorted(set(build_ids)), start=1)
    ]


def build_lifecycle_policy(
    build_ids: Iterable[str],
    count: int = DEFAULT_IMAGE_RETENTION_COUNT,
) -> str:
    """Serialize the lifecycle policy for ``build_ids``.

    The result depends only on the *set* of build ids, never on the order
    they were supplied in.

    Example:
        >>> build_lifecycle_policy(["web", "api"]) == build_lifecycle_policy(["api", "web"])
        True
    """
    return _serialize({"rules": lifecycle_rules(build_ids, count)})


def build_access_policy(organization_id: str) -> str:
    """Serialize the pull-from-organization repository access policy."""
    return _serialize({
        "Version": "2012-10-17",
        "Statement": [
            {
                "Sid": "AllowPullFromOrganization",
                "Effect": "Allow",
                "Principal": "*",
                "Action": list(PULL_ACTIONS),
                "Condition": {
                    "StringEquals": {"aws:PrincipalOrgID": organization_id},
                },
            }
        ],
    })
