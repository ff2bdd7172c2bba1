"""CLI layer for bankrecon application."""
