ADMIN_ALL = "admin_all"


def restaurant_room(restaurant_id: str) -> str:
    return f"restaurant_{restaurant_id}"


def table_room(qr_code_id: str) -> str:
    return f"table_{qr_code_id}"


def admin_room(admin_id: str) -> str:
    return f"admin_{admin_id}"
