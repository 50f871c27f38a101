"""Servicios del Core (orquestación de etapas)."""
