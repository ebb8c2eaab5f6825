"""
Position Simulation Module

Tracks simulated positions from signal entry to exit.
Handles the trailing-stop state machine, slippage and portfolio stats.

Author: Alphalert Team
Last Updated: 2026-10-17
"""
