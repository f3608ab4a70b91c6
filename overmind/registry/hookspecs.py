"""Hook specifications for the overmind plugin system."""
import pluggy

hookspec = pluggy.HookspecMarker("overmind")


@hookspec
def register_directives():
    """Register directive classes that can be placed by flags.

    Returns:
        Dict[str, type]: Mapping of directive names to Directive subclasses
    """
    pass


@hookspec
def register_objectives(overlord, ctx):
    """Produce objectives for an Overlord's objective group this tick.

    Args:
        overlord: The Overlord running its init phase
        ctx: TickContext of the current tick

    Returns:
        List[List[Objective]]: Objective sets to register
    """
    pass
