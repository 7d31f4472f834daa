"""Test package for the PID trainer.

Core tests drive the simulation and session headlessly with a fake clock.
UI smoke tests use pygame's dummy video/audio drivers so no real window
opens. Run ``pytest`` from the project root.
"""
