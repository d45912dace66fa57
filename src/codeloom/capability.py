from abc import ABC, abstractmethod

from codeloom.tools import Tool


class Capability(ABC):
    """A named bundle of tools registered with the executor as a unit.

    The built-in bundles are files, search, memory, todos and control.
    A bundle holds no project state of its own; handlers reach the
    repository, memory and todo store through their ``ToolContext``.

    Subclass it to add tools::

        class Timestamps(Capability):
            def __init__(self):
                super().__init__("timestamps")

            def tools(self) -> list[Tool]:
                @tool()
                async def utc_now(ctx, args):
                    \"\"\"Current UTC time in ISO format.\"\"\"
                    return ToolResult.ok(datetime.now(timezone.utc).isoformat())

                return [utc_now]

    Pass instances through ``ToolExecutor(capabilities=[...])``.
    """

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    def tools(self) -> list[Tool]:
        ...
