# plugins/core_directives.py
"""Built-in directives: guard and emergency."""
from typing import Dict

from pluggy import HookimplMarker

from ..core.directives import DirectiveEmergency, DirectiveGuard

hookimpl = HookimplMarker("overmind")


@hookimpl
def register_directives() -> Dict[str, type]:
    """Expose the core directives."""
    return {
        DirectiveGuard.directive_name: DirectiveGuard,
        DirectiveEmergency.directive_name: DirectiveEmergency,
    }
