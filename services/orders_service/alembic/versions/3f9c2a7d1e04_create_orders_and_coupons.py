"""create_orders_and_coupons

Revision ID: 3f9c2a7d1e04
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "3f9c2a7d1e04"
down_revision = None
branch_labels = None
depends_on = None


ENUMS = {
    "delivery_type_enum": ("PICKUP", "DELIVEREE", "FORWARDER"),
    "payment_type_enum": ("REGULAR", "SPLIT"),
    "payment_status_enum": (
        "PENDING",
        "PARTIAL",
        "PAID",
        "EXPIRED",
        "FAILED",
        "REFUNDED",
    ),
    "order_status_enum": (
        "PENDING",
        "PROCESSING",
        "READY",
        "SHIPPED",
        "COMPLETED",
        "CANCELLED",
    ),
    "status_type_enum": ("ORDER", "PAYMENT"),
    "kupon_jenis_diskon_enum": ("persentase", "jumlah_tetap"),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _timestamps(updated: bool = True) -> list[sa.Column]:
    columns = [sa.Column("created_at", sa.DateTime(timezone=True), nullable=True)]
    if updated:
        columns.append(
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True)
        )
    return columns


def upgrade() -> None:
    bind = op.get_bind()
    # payment_status_enum is shared by two tables, so types are created up front
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        "kupon",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("kode", sa.String(length=100), nullable=False),
        sa.Column("nama", sa.String(length=255), nullable=False),
        sa.Column("deskripsi", sa.Text(), nullable=True),
        sa.Column("jenis_diskon", _enum("kupon_jenis_diskon_enum"), nullable=False),
        sa.Column("nilai_diskon", sa.Numeric(15, 2), nullable=False),
        sa.Column("minimal_pembelian", sa.Numeric(15, 2), nullable=True),
        sa.Column("limit_pemakaian", sa.Integer(), nullable=True),
        sa.Column("tanggal_kedaluarsa", sa.Date(), nullable=False),
        sa.Column("is_all_kategori", sa.Boolean(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_kupon"),
    )
    op.create_index(
        "uq_kupon_kode_lower_active",
        "kupon",
        [sa.text("lower(kode)")],
        unique=True,
        postgresql_where=sa.text("deleted_at IS NULL"),
    )

    op.create_table(
        "kupon_kategori",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("kupon_id", sa.Uuid(), nullable=False),
        sa.Column("kategori_id", sa.Uuid(), nullable=False),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(
            ["kupon_id"],
            ["kupon.id"],
            name="fk_kupon_kategori_kupon_id_kupon",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["kategori_id"],
            ["kategori_produk.id"],
            name="fk_kupon_kategori_kategori_id_kategori_produk",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_kupon_kategori"),
        sa.UniqueConstraint(
            "kupon_id", "kategori_id", name="uq_kupon_kategori_kupon_id"
        ),
    )

    op.create_table(
        "pesanan",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("kode", sa.String(length=30), nullable=False),
        sa.Column("buyer_id", sa.Uuid(), nullable=False),
        sa.Column("delivery_type", _enum("delivery_type_enum"), nullable=False),
        sa.Column("alamat_buyer_id", sa.Uuid(), nullable=True),
        sa.Column("payment_type", _enum("payment_type_enum"), nullable=False),
        sa.Column("payment_status", _enum("payment_status_enum"), nullable=False),
        sa.Column("order_status", _enum("order_status_enum"), nullable=False),
        sa.Column("biaya_produk", sa.Numeric(15, 2), nullable=False),
        sa.Column("biaya_pengiriman", sa.Numeric(15, 2), nullable=True),
        sa.Column("biaya_ppn", sa.Numeric(15, 2), nullable=True),
        sa.Column("biaya_lainnya", sa.Numeric(15, 2), nullable=True),
        sa.Column("total", sa.Numeric(15, 2), nullable=False),
        sa.Column("kupon_id", sa.Uuid(), nullable=True),
        sa.Column("kode_kupon", sa.String(length=100), nullable=True),
        sa.Column("potongan_kupon", sa.Numeric(15, 2), nullable=True),
        sa.Column("catatan", sa.Text(), nullable=True),
        sa.Column("catatan_admin", sa.Text(), nullable=True),
        sa.Column("expired_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ready_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("shipped_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_reason", sa.Text(), nullable=True),
        sa.Column("deliveree_booking_id", sa.String(length=100), nullable=True),
        sa.Column("forwarder_tracking_no", sa.String(length=100), nullable=True),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("total >= 0", name="ck_pesanan_total_non_negative"),
        sa.ForeignKeyConstraint(
            ["buyer_id"], ["buyer.id"], name="fk_pesanan_buyer_id_buyer"
        ),
        sa.ForeignKeyConstraint(
            ["kupon_id"], ["kupon.id"], name="fk_pesanan_kupon_id_kupon"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_pesanan"),
        sa.UniqueConstraint("kode", name="uq_pesanan_kode"),
    )
    op.create_index("ix_pesanan_buyer_id", "pesanan", ["buyer_id"])
    op.create_index(
        "ix_pesanan_status_created", "pesanan", ["order_status", "created_at"]
    )

    op.create_table(
        "pesanan_item",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("pesanan_id", sa.Uuid(), nullable=False),
        sa.Column("produk_id", sa.Uuid(), nullable=False),
        sa.Column("kategori_id", sa.Uuid(), nullable=True),
        sa.Column("nama_produk", sa.String(length=255), nullable=False),
        sa.Column("sku", sa.String(length=100), nullable=False),
        sa.Column("qty", sa.Integer(), nullable=False),
        sa.Column("harga_satuan", sa.Numeric(15, 2), nullable=False),
        sa.Column("diskon_satuan", sa.Numeric(15, 2), nullable=True),
        sa.Column("subtotal", sa.Numeric(15, 2), nullable=False),
        *_timestamps(updated=False),
        sa.CheckConstraint("qty >= 1", name="ck_pesanan_item_qty_positive"),
        sa.ForeignKeyConstraint(
            ["pesanan_id"],
            ["pesanan.id"],
            name="fk_pesanan_item_pesanan_id_pesanan",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["produk_id"], ["produk.id"], name="fk_pesanan_item_produk_id_produk"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_pesanan_item"),
    )
    op.create_index("ix_pesanan_item_pesanan_id", "pesanan_item", ["pesanan_id"])

    op.create_table(
        "pesanan_pembayaran",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("pesanan_id", sa.Uuid(), nullable=False),
        sa.Column("buyer_id", sa.Uuid(), nullable=False),
        sa.Column("jumlah", sa.Numeric(15, 2), nullable=False),
        sa.Column("status", _enum("payment_status_enum"), nullable=False),
        sa.Column("xendit_invoice_id", sa.String(length=100), nullable=True),
        sa.Column("xendit_external_id", sa.String(length=100), nullable=False),
        sa.Column("xendit_payment_url", sa.Text(), nullable=True),
        sa.Column("xendit_payment_method", sa.String(length=50), nullable=True),
        sa.Column("expired_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("jumlah > 0", name="ck_pesanan_pembayaran_jumlah_positive"),
        sa.ForeignKeyConstraint(
            ["pesanan_id"],
            ["pesanan.id"],
            name="fk_pesanan_pembayaran_pesanan_id_pesanan",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["buyer_id"], ["buyer.id"], name="fk_pesanan_pembayaran_buyer_id_buyer"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_pesanan_pembayaran"),
        sa.UniqueConstraint(
            "xendit_external_id", name="uq_pesanan_pembayaran_xendit_external_id"
        ),
    )
    op.create_index(
        "ix_pesanan_pembayaran_pesanan_id", "pesanan_pembayaran", ["pesanan_id"]
    )
    op.create_index(
        "ix_pesanan_pembayaran_xendit_invoice_id",
        "pesanan_pembayaran",
        ["xendit_invoice_id"],
    )

    op.create_table(
        "pesanan_status_history",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("pesanan_id", sa.Uuid(), nullable=False),
        sa.Column("status_type", _enum("status_type_enum"), nullable=False),
        sa.Column("status_from", sa.String(length=20), nullable=True),
        sa.Column("status_to", sa.String(length=20), nullable=False),
        sa.Column("changed_by", sa.Uuid(), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(
            ["pesanan_id"],
            ["pesanan.id"],
            name="fk_pesanan_status_history_pesanan_id_pesanan",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_pesanan_status_history"),
    )
    op.create_index(
        "ix_pesanan_status_history_order_created",
        "pesanan_status_history",
        ["pesanan_id", "created_at"],
    )

    op.create_table(
        "kupon_usage",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("kupon_id", sa.Uuid(), nullable=False),
        sa.Column("buyer_id", sa.Uuid(), nullable=False),
        sa.Column("pesanan_id", sa.Uuid(), nullable=False),
        sa.Column("kode_kupon", sa.String(length=100), nullable=False),
        sa.Column("nilai_potongan", sa.Numeric(15, 2), nullable=False),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(
            ["kupon_id"], ["kupon.id"], name="fk_kupon_usage_kupon_id_kupon"
        ),
        sa.ForeignKeyConstraint(
            ["buyer_id"], ["buyer.id"], name="fk_kupon_usage_buyer_id_buyer"
        ),
        sa.ForeignKeyConstraint(
            ["pesanan_id"], ["pesanan.id"], name="fk_kupon_usage_pesanan_id_pesanan"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_kupon_usage"),
        sa.UniqueConstraint(
            "kupon_id", "pesanan_id", name="uq_kupon_usage_kupon_id"
        ),
    )
    op.create_index("ix_kupon_usage_kupon_id", "kupon_usage", ["kupon_id"])


def downgrade() -> None:
    op.drop_table("kupon_usage")
    op.drop_table("pesanan_status_history")
    op.drop_table("pesanan_pembayaran")
    op.drop_table("pesanan_item")
    op.drop_table("pesanan")
    op.drop_table("kupon_kategori")
    op.drop_index("uq_kupon_kode_lower_active", table_name="kupon")
    op.drop_table("kupon")

    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
