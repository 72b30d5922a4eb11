"""bun-ready: estimate how well a JavaScript/TypeScript project will migrate to Bun."""

__version__ = "0.3.0"
