from types import SimpleNamespace


def make_admins(*user_ids):
    """Ответ get_chat_administrators из указанных user_id."""
    return [SimpleNamespace(user=SimpleNamespace(id=user_id), status="administrator") for user_id in user_ids]


def sent_text(mock) -> str:
    """Текст из последнего вызова answer/edit_text."""
    call = mock.await_args
    return call.kwargs.get("text") or call.args[0]
