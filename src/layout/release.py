"""Release metadata consumed by the platform's process supervisor."""

from typing import Optional

import yaml

from .assembler import ResolvedPlan


def render_release(plan: ResolvedPlan) -> str:
    """YAML document declaring the ``web`` process type."""
    data = {"default_process_types": {"web": plan.launch.start_command}}
    return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)


def write_release(plan: ResolvedPlan, path: Optional[str] = None) -> str:
    """Render the release document and write it to ``path`` when given."""
    text = render_release(plan)
    if path:
        with open(path, "w", encoding="utf-8") as fh:
            fh.write(text)
    return text
