from .runner import SimulationResult, SimulationRunner, run_simulation

__all__ = ["SimulationResult", "SimulationRunner", "run_simulation"]
