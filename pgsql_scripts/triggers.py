# pgsql_scripts/triggers.py
from alembic_utils.pg_trigger import PGTrigger
from . import functions as pg_func

db_schema = pg_func.check_workflow_instance_state_func.schema
db_func = pg_func.check_workflow_instance_state_func.signature
trg_check_workflow_instance_state = PGTrigger(
    schema="wf",
    signature="check_workflow_instance_state",
    on_entity="wf.workflow_instances",  # 이 트리거가 적용될 테이블
    is_constraint=False,
    definition=f"""
    BEFORE INSERT OR UPDATE OF current_state, definition_id
    ON wf.workflow_instances
    FOR EACH ROW
    EXECUTE FUNCTION {db_schema}.{db_func}
    """
)

db_schema = pg_func.fill_attachment_uploader_snapshot_func.schema
db_func = pg_func.fill_attachment_uploader_snapshot_func.signature
trg_fill_attachment_uploader_snapshot = PGTrigger(
    schema="shared",  # 스키마 이름
    signature="fill_attachment_uploader_snapshot",  # 트리거 이름
    on_entity="shared.attachments",  # 트리거를 적용할 테이블
    is_constraint=False,
    definition=f"""
    BEFORE INSERT OR UPDATE OF owner_id
    ON shared.attachments
    FOR EACH ROW
    EXECUTE FUNCTION {db_schema}.{db_func}
    """
)
