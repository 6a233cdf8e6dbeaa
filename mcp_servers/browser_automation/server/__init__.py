"""Server-side plumbing: result types, protocol contract, module manifest and tool registry.

Kept import-free: tool provider units import `server.types`, and the registry
imports tool units lazily during rebuilds.
"""
