"""Prompt templates for tutor agent, collaboration and routing calls."""
