"""initial schema: restaurants, menu, kitchen sections, qr codes, orders"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

ENUMS = (
    sa.Enum("RESTAURANT", "CASHIER", "ADMIN", name="user_role"),
    sa.Enum("ACTIVE", "EXPIRED", "CANCELLED", name="subscription_status"),
    sa.Enum("DINE_IN", "DELIVERY", name="order_type"),
    sa.Enum("PENDING", "PREPARING", "READY", "DELIVERED", "COMPLETED", "CANCELLED", name="order_status"),
    sa.Enum("PENDING", "PREPARING", "COMPLETED", name="kitchen_item_status"),
    sa.Enum("NEW_ORDER", "ORDER_UPDATE", "SYSTEM", name="notification_type"),
)


def _id():
    return sa.Column("id", sa.String(36), primary_key=True)


def _ts(name="created_at"):
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


def upgrade() -> None:
    """Upgrade schema."""
    user_role, subscription_status, order_type, order_status, kitchen_item_status, notification_type = ENUMS

    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.String(255), nullable=False, unique=True, index=True),
        sa.Column("name", sa.String(100), nullable=True),
        sa.Column("role", user_role, nullable=False, server_default="RESTAURANT"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        _ts(),
    )

    op.create_table(
        "restaurants",
        _id(),
        sa.Column("owner_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("name_ar", sa.String(100), nullable=True),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        _ts(),
        _ts("updated_at"),
    )

    op.create_table(
        "plans",
        _id(),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("features", sa.JSON, nullable=False),
    )

    op.create_table(
        "subscriptions",
        _id(),
        sa.Column("restaurant_id", sa.String(36), sa.ForeignKey("restaurants.id", ondelete="CASCADE"),
                  nullable=False, index=True),
        sa.Column("plan_id", sa.String(36), sa.ForeignKey("plans.id"), nullable=False),
        sa.Column("status", subscription_status, nullable=False, server_default="ACTIVE"),
        _ts(),
    )

    op.create_table(
        "menus",
        _id(),
        sa.Column("restaurant_id", sa.String(36), sa.ForeignKey("restaurants.id", ondelete="CASCADE"),
                  nullable=False, index=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
    )

    op.create_table(
        "categories",
        _id(),
        sa.Column("menu_id", sa.String(36), sa.ForeignKey("menus.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("sort_order", sa.Integer, nullable=False, server_default="0"),
    )

    op.create_table(
        "kitchen_sections",
        _id(),
        sa.Column("restaurant_id", sa.String(36), sa.ForeignKey("restaurants.id", ondelete="CASCADE"),
                  nullable=False, index=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("name_ar", sa.String(100), nullable=True),
        sa.Column("sort_order", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        _ts(),
        _ts("updated_at"),
    )

    op.create_table(
        "menu_items",
        _id(),
        sa.Column("category_id", sa.String(36), sa.ForeignKey("categories.id", ondelete="CASCADE"),
                  nullable=False, index=True),
        sa.Column("kitchen_section_id", sa.String(36), sa.ForeignKey("kitchen_sections.id", ondelete="SET NULL"),
                  nullable=True, index=True),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("name_ar", sa.String(128), nullable=True),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("discount", sa.Integer, nullable=True),
        sa.Column("extras", sa.JSON, nullable=True),
        sa.Column("is_available", sa.Boolean, nullable=False, server_default=sa.true()),
        _ts(),
    )

    op.create_table(
        "qr_codes",
        _id(),
        sa.Column("restaurant_id", sa.String(36), sa.ForeignKey("restaurants.id", ondelete="CASCADE"),
                  nullable=False, index=True),
        sa.Column("table_number", sa.String(10), nullable=False),
        sa.Column("qr_code", sa.String(512), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("is_occupied", sa.Boolean, nullable=False, server_default=sa.false()),
        _ts(),
        sa.UniqueConstraint("restaurant_id", "table_number", name="uq_qr_restaurant_table"),
    )

    op.create_table(
        "orders",
        _id(),
        sa.Column("restaurant_id", sa.String(36), sa.ForeignKey("restaurants.id", ondelete="CASCADE"),
                  nullable=False, index=True),
        sa.Column("order_type", order_type, nullable=False, server_default="DINE_IN"),
        sa.Column("table_number", sa.String(10), nullable=True),
        sa.Column("qr_code_id", sa.String(36), sa.ForeignKey("qr_codes.id", ondelete="SET NULL"), nullable=True),
        sa.Column("status", order_status, nullable=False, server_default="PENDING"),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("customer_name", sa.String(50), nullable=True),
        sa.Column("customer_phone", sa.String(15), nullable=True),
        sa.Column("customer_address", sa.String(200), nullable=True),
        sa.Column("customer_ip", sa.String(45), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("cashier_id", sa.String(36), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        _ts(),
        _ts("updated_at"),
    )
    op.create_index("ix_orders_created_at", "orders", ["created_at"])

    op.create_table(
        "order_items",
        _id(),
        sa.Column("order_id", sa.String(36), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("menu_item_id", sa.String(36), sa.ForeignKey("menu_items.id", ondelete="SET NULL"), nullable=True),
        sa.Column("quantity", sa.Integer, nullable=False, server_default="1"),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("discount", sa.Integer, nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("extras", sa.JSON, nullable=True),
        sa.Column("is_custom_item", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("custom_item_name", sa.String(128), nullable=True),
        sa.Column("custom_item_name_ar", sa.String(128), nullable=True),
        sa.Column("kitchen_item_status", kitchen_item_status, nullable=False, server_default="PENDING"),
        _ts(),
        _ts("updated_at"),
    )

    op.create_table(
        "notifications",
        _id(),
        sa.Column("restaurant_id", sa.String(36), sa.ForeignKey("restaurants.id", ondelete="CASCADE"),
                  nullable=False, index=True),
        sa.Column("order_id", sa.String(36), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=True),
        sa.Column("type", notification_type, nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("body", sa.Text, nullable=False),
        sa.Column("is_read", sa.Boolean, nullable=False, server_default=sa.false()),
        _ts(),
    )


def downgrade() -> None:
    """Downgrade schema."""
    for table in (
        "notifications",
        "order_items",
        "orders",
        "qr_codes",
        "menu_items",
        "kitchen_sections",
        "categories",
        "menus",
        "subscriptions",
        "plans",
        "restaurants",
        "users",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum in ENUMS:
        enum.drop(bind, checkfirst=True)
