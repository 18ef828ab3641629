"""Publish Nix flake releases to FlakeHub."""
