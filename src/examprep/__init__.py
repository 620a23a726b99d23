"""Exam Prep progress and ranking engine."""
