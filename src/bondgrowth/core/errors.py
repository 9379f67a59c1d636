"""
Error classes for BondGrowth.

The simulation engines never raise for bad market data: malformed holdings,
missing FX quotes and zero-face pools all resolve to neutral numeric
fallbacks. Exceptions are reserved for structurally invalid requests, which
are rejected before any engine runs.
"""


class ConfigError(Exception):
    """
    Configuration error while building a simulation request.

    This exception is raised when a request cannot be turned into a runnable
    simulation at all.

    **Common Causes:**
    - Unknown scenario type in a request file
    - Two replacements configured for the same source holding
    - Missing required scenario fields (e.g. ``maturity_year``)
    - Request file root that is not a mapping

    **Example Usage:**
        ```python
        from bondgrowth.core.errors import ConfigError
        from bondgrowth.core.scenarios import MaturityReplacementScenario, ReplacementSpec

        try:
            MaturityReplacementScenario(
                id="sc_2",
                replacements=(
                    ReplacementSpec("IT0001278511", 3.5, 0.0, 2039),
                    ReplacementSpec("IT0001278511", 4.0, 0.0, 2041),
                ),
            )
        except ConfigError as e:
            print(f"Configuration error: {e}")
        ```
    """

    pass
