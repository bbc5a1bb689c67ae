"""drawflow: workflow task-chain compiler, build orchestrator and quota draw engine."""

__version__ = "0.3.0"
