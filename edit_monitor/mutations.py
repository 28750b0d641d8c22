# Edit Monitor — upload payload builders
#
# Two wire variants:
#   GraphQL: one insert mutation per entity (user, tool, repo, branch, file,
#           usage), batched as aliased fields m0..mN of one mutation
#   Flat:    {"graph", "origin", "category", "events": [...]}
#
# Builders are pure; emitter.py does the chunking and I/O.

import json
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Sequence, TypeVar

from .config import Settings
from .normalizer import UNKNOWN, CodingEvent

T = TypeVar("T")


@dataclass(frozen=True)
class Mutation:
    """One insert against a backend model."""
    type: str
    model: str
    data: Dict[str, Any]

    @classmethod
    def insert(cls, model: str, objects: List[Dict[str, Any]]) -> "Mutation":
        return cls(
            type="insert",
            model=model,
            data={
                "objects": objects,
                "on_conflict": {
                    "constraint": f"{model}_pkey",
                    "update_columns": ["refreshedAt"],
                },
            },
        )


def ref(model: str, obj: Dict[str, Any]) -> Dict[str, Any]:
    """Reference to another entity in the graph."""
    return {"ref": {model: obj}}


def _known(value: str) -> bool:
    return bool(value) and value != UNKNOWN


def build_mutations(events: Sequence[CodingEvent], category: str,
                    settings: Settings) -> List[Mutation]:
    """
    Mutations for one category's events: the user and tool once, then per
    event its repository, branch, file (when known) and a usage record.
    """
    vcs_user = {
        "uid": settings.vcs_uid,
        "name": settings.vcs_name,
        "email": settings.vcs_email,
        "source": settings.user_source,
    }
    vcs_user_tool = {
        "tool": {"category": category},
        "user": ref("vcs_User", vcs_user),
    }
    mutations = [
        Mutation.insert("vcs_User", [vcs_user]),
        Mutation.insert("vcs_UserTool", [vcs_user_tool]),
    ]

    for event in events:
        repository: Optional[Dict[str, Any]] = None
        branch: Optional[Dict[str, Any]] = None
        file: Optional[Dict[str, Any]] = None

        if _known(event.repository):
            repository = {"name": event.repository}
            mutations.append(Mutation.insert("vcs_Repository", [repository]))

            if _known(event.branch):
                branch = {
                    "name": event.branch,
                    "repository": ref("vcs_Repository", repository),
                }
                mutations.append(Mutation.insert("vcs_Branch", [branch]))

        if event.filename:
            file = {
                "path": event.filename,
                "extension": event.extension or event.language,
                "uid": event.filename,
            }
            mutations.append(Mutation.insert("vcs_File", [file]))

        usage: Dict[str, Any] = {
            "usedAt": event.to_dict()["timestamp"],
            "userTool": ref("vcs_UserTool", vcs_user_tool),
            "charactersAdded": event.char_count_change,
        }
        if repository is not None:
            usage["repository"] = ref("vcs_Repository", repository)
        if branch is not None:
            usage["branch"] = ref("vcs_Branch", branch)
        if file is not None:
            usage["file"] = ref("vcs_File", file)
        mutations.append(Mutation.insert("vcs_UserToolUsage", [usage]))

    return mutations


def batch_mutation_query(mutations: Sequence[Mutation]) -> str:
    """Render mutations as aliased fields of a single GraphQL mutation."""
    fields = [
        f"m{i}: {m.type}_{m.model}({json.dumps(m.data)}) {{ affected_rows }}"
        for i, m in enumerate(mutations)
    ]
    return "mutation { " + " ".join(fields) + " }"


def build_flat_payload(events: Sequence[CodingEvent], category: str,
                       settings: Settings) -> Dict[str, Any]:
    return {
        "graph": settings.graph,
        "origin": settings.origin,
        "category": category,
        "events": [e.to_dict() for e in events],
    }


def chunked(items: Sequence[T], size: int) -> Iterator[List[T]]:
    """Consecutive chunks of at most `size` items."""
    size = max(int(size), 1)
    for start in range(0, len(items), size):
        yield list(items[start:start + size])
