"""
Evaluation module
Tick-loop simulator and results export
"""

from .system_simulator import EdgeFogSimulator

__all__ = ['EdgeFogSimulator']
