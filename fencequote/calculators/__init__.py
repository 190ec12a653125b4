"""
Deterministic material calculation engine.

Pure Python math. Given a JobSpec, produce exact MaterialQuantities:
panels, posts, post heights, patio tubing, plinths, concrete and screws.
"""
