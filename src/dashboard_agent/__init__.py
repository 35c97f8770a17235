"""Natural-language assistant for the ioBroker dashboard CLI."""

__version__ = "0.1.0"

from .config import AgentConfig, SequencerConfig

__all__ = ["AgentConfig", "SequencerConfig", "__version__"]
