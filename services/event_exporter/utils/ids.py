import uuid


def generate_event_id() -> str:
    """UUID-образный идентификатор строки (версия 4, фиксированный полубайт версии)."""
    return str(uuid.uuid4())


def generate_batch_id() -> str:
    """Непрозрачный идентификатор пачки для корреляции логов."""
    return uuid.uuid4().hex[:12]
