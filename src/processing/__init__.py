"""Run state, controller, executor and batch scheduler."""
