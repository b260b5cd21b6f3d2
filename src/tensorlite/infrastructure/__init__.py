"""Concrete tensor, operators, backends, autograd, and configuration."""
