"""Exception types shared across the validation loop."""


class UIForgeError(Exception):
    """Base class for uiforge errors."""


class ToolInvocationError(UIForgeError):
    """The checking toolchain could not run or produced unparseable output.

    Fatal for a validation run: it is never retried and never converted into
    per-artifact failures.
    """

    def __init__(self, tool: str, message: str, output: str = ""):
        self.tool = tool
        self.output = output
        super().__init__(f"{tool}: {message}")
