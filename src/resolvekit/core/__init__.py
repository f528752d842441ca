"""Core resolution machinery and shared validation."""
