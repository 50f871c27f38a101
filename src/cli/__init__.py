"""Capa CLI (Typer + Rich): prompts, tablas y códigos de salida."""
