"""Prompt templates sent to the analysis model."""
