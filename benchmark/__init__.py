"""Agent ladder and arena runner for measuring the planner."""
