# app/domains/wf/__init__.py

"""
'wf' 도메인 패키지.

워크플로 정의(상태/액션)를 DB 에 저장하고, 순수 상태 기계(engine)로 전이를 판정합니다.
업무 레코드의 상태 동기화는 각 도메인이 등록한 훅으로 같은 트랜잭션에서 수행합니다.
"""
