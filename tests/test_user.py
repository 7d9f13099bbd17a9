from services.user import get_or_create_user, get_user


async def test_get_or_create_user_is_stable(session):
    created = await get_or_create_user(session, 555, "ivan", "Иван", None)
    again = await get_or_create_user(session, 555, "ivan_new", "Иван", "Петров")

    assert again.id == created.id
    assert again.username == "ivan_new"
    assert again.display_name == "Иван Петров"
    assert (await get_user(session, created.id)).telegram_id == 555


async def test_display_name_falls_back_to_username(session):
    user = await get_or_create_user(session, 777, "anon")

    assert user.display_name == "anon"
