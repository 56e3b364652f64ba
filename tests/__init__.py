"""Test package for Endocrine ER.

Core tests drive the shift controller with a virtual clock so countdowns and
transition delays are exercised without waiting in real time. The UI tests run
headlessly using pygame's dummy video driver. Run ``pytest`` from the project
root.
"""
