"""Core primitives shared across phaseline."""
