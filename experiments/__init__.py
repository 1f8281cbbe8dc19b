"""Experiment harness and scenario definitions for the drive-through simulation."""
