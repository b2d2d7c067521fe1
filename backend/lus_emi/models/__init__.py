from lus_emi.models import (  # noqa: F401
    aml,
    cashier_session,
    compliance,
    document,
    notification,
    organization,
    qr_code,
    settlement,
    transaction,
    user,
    wallet,
)
