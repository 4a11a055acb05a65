# tests/domains/__init__.py

"""
도메인별 테스트 패키지입니다. (usr, cfg, shared, oauth, wf, corp)
"""
