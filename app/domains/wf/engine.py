# app/domains/wf/engine.py

"""
워크플로 상태 기계 (DB/HTTP 에 의존하지 않는 순수 로직).

정의(상태 목록, 초기 상태, 상태별 액션)를 검증해 StateMachine 을 만들고,
현재 상태와 액션 키, 행위자 역할로 전이를 결정합니다.
서비스 계층은 여기서 발생한 WorkflowError 를 HTTP 오류로 변환합니다.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .schemas import WorkflowActionConfig, WorkflowConfig, WorkflowStateConfig

WILDCARD_ROLE = "*"


class WorkflowError(Exception):
    """워크플로 오류의 기본 클래스"""


class WorkflowDefinitionError(WorkflowError):
    """정의 자체가 잘못된 경우 (상태 중복, 초기 상태 누락, 잘못된 전이 대상 등)"""


class UnknownStateError(WorkflowError):
    """상태 목록에 없는 상태를 참조한 경우"""


class TransitionNotAllowedError(WorkflowError):
    """현재 상태에서 해당 액션을 사용할 수 없는 경우"""


class TransitionForbiddenError(WorkflowError):
    """행위자 역할이 액션의 역할 조건을 만족하지 못하는 경우"""


@dataclass(frozen=True)
class Transition:
    action_key: str
    source: str
    target: str
    final: bool
    business: Dict[str, Any] = field(default_factory=dict)


class StateMachine:
    """
    검증된 워크플로 정의.

    - states: 순서가 있는 상태 목록 (중복 불가)
    - initial_state: states 의 원소
    - config: 상태별 label / final / business / actions
    """

    def __init__(self, states: Sequence[str], initial_state: str, config: WorkflowConfig):
        self.states: List[str] = list(states)
        self.initial_state = initial_state
        self.config = config
        self._validate()

    @classmethod
    def from_definition(cls, states: Sequence[str], initial_state: str, config: Optional[Mapping[str, Any]]) -> "StateMachine":
        return cls(states, initial_state, WorkflowConfig.model_validate(config or {}))

    def _validate(self) -> None:
        if not self.states:
            raise WorkflowDefinitionError("Workflow must declare at least one state")
        if len(set(self.states)) != len(self.states):
            raise WorkflowDefinitionError("Workflow states must be distinct")
        if self.initial_state not in self.states:
            raise WorkflowDefinitionError(f"Initial state '{self.initial_state}' is not a declared state")
        for state_key, state_config in self.config.states.items():
            if state_key not in self.states:
                raise WorkflowDefinitionError(f"Configured state '{state_key}' is not a declared state")
            seen = set()
            for action in state_config.actions:
                if action.key in seen:
                    raise WorkflowDefinitionError(f"Duplicate action '{action.key}' in state '{state_key}'")
                seen.add(action.key)
                if action.to not in self.states:
                    raise WorkflowDefinitionError(
                        f"Action '{action.key}' of state '{state_key}' targets unknown state '{action.to}'"
                    )

    # ------------------------------------------------------------------
    # 조회
    # ------------------------------------------------------------------
    def state_config(self, state: str) -> WorkflowStateConfig:
        if state not in self.states:
            raise UnknownStateError(f"Unknown state '{state}'")
        return self.config.states.get(state) or WorkflowStateConfig()

    def is_final(self, state: str) -> bool:
        return self.state_config(state).final

    def business(self, state: str) -> Dict[str, Any]:
        return dict(self.state_config(state).business)

    def available_actions(self, state: str, actor_roles: Optional[Iterable[str]] = None) -> List[WorkflowActionConfig]:
        actions = self.state_config(state).actions
        if actor_roles is None:
            return list(actions)
        roles = set(actor_roles)
        return [action for action in actions if self._role_allowed(action, roles)]

    @staticmethod
    def _role_allowed(action: WorkflowActionConfig, roles: set) -> bool:
        if not action.roles or WILDCARD_ROLE in action.roles:
            return True
        return bool(roles.intersection(action.roles))

    # ------------------------------------------------------------------
    # 전이
    # ------------------------------------------------------------------
    def resolve(self, current: str, action_key: str, actor_roles: Iterable[str]) -> Transition:
        """
        현재 상태에서 action_key 를 수행했을 때의 전이를 결정합니다.
        순서: 현재 상태 확인 -> 액션 존재 확인 -> 역할 확인 -> 대상 상태 확인
        """
        state_config = self.state_config(current)
        action = next((a for a in state_config.actions if a.key == action_key), None)
        if action is None:
            raise TransitionNotAllowedError(f"Action '{action_key}' is not available in state '{current}'")
        if not self._role_allowed(action, set(actor_roles)):
            raise TransitionForbiddenError(f"Action '{action_key}' requires one of roles {action.roles}")
        if action.to not in self.states:
            raise UnknownStateError(f"Unknown target state '{action.to}'")
        return Transition(
            action_key=action.key,
            source=current,
            target=action.to,
            final=self.is_final(action.to),
            business=self.business(action.to),
        )

    # ------------------------------------------------------------------
    # 정의 변경
    # ------------------------------------------------------------------
    def retire_state(self, state: str, successor: str) -> "StateMachine":
        """
        state 를 제거한 새 정의를 반환합니다.
        state 로 향하던 액션과 초기 상태는 successor 로 바뀝니다.
        """
        if state not in self.states:
            raise UnknownStateError(f"Unknown state '{state}'")
        if successor == state:
            raise WorkflowDefinitionError("Successor must differ from the retired state")
        if successor not in self.states:
            raise UnknownStateError(f"Successor '{successor}' is not a declared state")

        new_states = [s for s in self.states if s != state]
        new_config = {}
        for state_key, state_config in self.config.states.items():
            if state_key == state:
                continue
            actions = [
                action.model_copy(update={"to": successor}) if action.to == state else action
                for action in state_config.actions
            ]
            new_config[state_key] = state_config.model_copy(update={"actions": actions})
        initial = successor if self.initial_state == state else self.initial_state
        return StateMachine(new_states, initial, WorkflowConfig(states=new_config))

    def to_config(self) -> Dict[str, Any]:
        return self.config.model_dump(mode="json")
