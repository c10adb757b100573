"""
Job templates

A template fixes how many lines of each material category a job must carry.
"""
from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass(frozen=True)
class JobTemplate:
    name: str
    description: str
    requirements: Dict[str, int] = field(default_factory=dict)


JOB_TEMPLATES: Dict[str, JobTemplate] = {
    "standard": JobTemplate(
        name="Standard Job",
        description="A standard job requiring a base coat, top coat, and broadcast.",
        requirements={
            "base coat": 1,
            "top coat": 1,
            "broadcast": 1,
        },
    ),
}


def get_template(key: str) -> Optional[JobTemplate]:
    return JOB_TEMPLATES.get(key)
