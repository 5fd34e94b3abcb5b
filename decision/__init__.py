"""
Decision module
Fuzzy offloading controller and the orchestrator that applies it
"""
from .fuzzy_controller import FuzzyLogicController, FuzzyDecision, FuzzySet
from .offloading_manager import EdgeOrchestrator

__all__ = ['FuzzyLogicController', 'FuzzyDecision', 'FuzzySet', 'EdgeOrchestrator']
