# pgsql_scripts/functions.py
from alembic_utils.pg_function import PGFunction

check_workflow_instance_state_func = PGFunction(
    schema="wf",  # 스키마 이름
    signature="check_workflow_instance_state()",  # 함수 시그니처
    definition="""
    -- 인스턴스의 현재 상태가 정의의 상태 목록에 포함되는지 검사합니다.
    RETURNS TRIGGER AS $$
    DECLARE
        states_val VARCHAR(64)[];
    BEGIN
        SELECT states INTO states_val
        FROM wf.workflow_definitions
        WHERE id = NEW.definition_id;

        IF states_val IS NULL THEN
            RAISE EXCEPTION 'Workflow definition % not found for instance %', NEW.definition_id, NEW.id;
        END IF;

        IF NOT (NEW.current_state = ANY(states_val)) THEN
            RAISE EXCEPTION 'State "%" is not a member of workflow definition % (instance %)',
                NEW.current_state, NEW.definition_id, NEW.id
                USING ERRCODE = 'check_violation';
        END IF;

        RETURN NEW;
    END;
    $$ LANGUAGE plpgsql;
    """
)

fill_attachment_uploader_snapshot_func = PGFunction(
    schema="shared",
    signature="fill_attachment_uploader_snapshot()",
    definition="""
    -- 업로더 스냅샷이 비어 있으면 usr.users 에서 채웁니다.
    -- 사용자 삭제(owner_id -> NULL) 시에는 기존 스냅샷을 그대로 둡니다.
    RETURNS TRIGGER AS $$
    BEGIN
        IF NEW.owner_id IS NOT NULL
           AND (NEW.uploader_name_snapshot IS NULL OR NEW.uploader_email_snapshot IS NULL) THEN
            SELECT COALESCE(NEW.uploader_name_snapshot, COALESCE(u.name, u.email)),
                   COALESCE(NEW.uploader_email_snapshot, u.email)
              INTO NEW.uploader_name_snapshot, NEW.uploader_email_snapshot
              FROM usr.users u
             WHERE u.id = NEW.owner_id;
        END IF;
        RETURN NEW;
    END;
    $$ LANGUAGE plpgsql;
    """
)
