"""Adaptadores: procesos externos (Docker/Podman), compose file, HTTP y exportación."""
