"""서비스 패키지 — 비즈니스 로직 계층.

Service package — Business logic layer.
Pure scoring functions (scoring, classification, potential, nine_box) plus the
service classes that orchestrate them over repositories and own the transactions.
"""
