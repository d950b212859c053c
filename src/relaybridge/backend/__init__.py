"""Agent backend collaborators (Direct Line)."""
