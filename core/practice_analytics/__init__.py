"""core/practice_analytics — Practice analytics and behaviour intelligence.

session_tracker.py:    Open session, sealed history, quality metrics, statistics.
pattern_recognizer.py: Five incremental behaviour-pattern detectors.
progress_analyzer.py:  Skill-area levels, learning velocity, milestones.
suggestion_engine.py:  Ranked practice suggestions and automation plans.
engine.py:             PracticeAnalyticsEngine, the single entry point for callers.
"""
