"""Core: dominio, configuración y orquestación del aprovisionamiento."""
