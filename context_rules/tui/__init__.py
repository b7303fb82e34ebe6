from context_rules.tui.renderers import ResolutionConsoleUI

__all__ = ["ResolutionConsoleUI"]
