"""
Focus timer.

Components:
- timer_models.py: phases, presets, snapshots
- phase_engine.py: work/break state machine that records sessions
- ticker.py: cancellable one-second asyncio ticker driving the engine
"""
