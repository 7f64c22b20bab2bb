"""Client storage keys. Versioned keys leave room for future migrations."""

OVERSEE_USER_ID_KEY = "oversee_user_id_v1"
PREFERRED_VIEW_KEY = "preferred_view_v1"
# Connection code generated by a common user; cleared on logout.
GENERATED_CODE_KEY = "gerado_codigo"

# Numeric user types returned by GET /Usuario/eu
USER_TYPE_COMMON = 1
USER_TYPE_AGENT = 2
