"""Core relay logic: session registry, reply polling, coordination."""
