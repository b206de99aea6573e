"""Application layer: use case orchestration over the boundary and core layers."""
