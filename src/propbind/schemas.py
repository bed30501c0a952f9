"""
Record schemas of the property test application.
"""

from propbind.configuration import Attribute, RecordSchema, ValueType

DEFAULT_GREETING = "Hello Program"

APP_SCHEMA = RecordSchema(
    name="AppProperties",
    attributes=(
        Attribute(name="name", required=True),
        Attribute(name="defaultValue", default=DEFAULT_GREETING),
        Attribute(name="friends", type=ValueType.LIST, default=()),
        Attribute(name="cutline", type=ValueType.MAP, value_type=ValueType.INTEGER),
    ),
)

DATABASE_SCHEMA = RecordSchema(
    name="DatabaseProperties",
    attributes=(
        Attribute(name="url", required=True),
        Attribute(name="dbName"),
        Attribute(name="userName"),
        Attribute(name="password"),
    ),
)

USER_SCHEMA = RecordSchema(
    name="User",
    attributes=(
        Attribute(name="name"),
        Attribute(name="age", type=ValueType.INTEGER),
        Attribute(name="subject"),
    ),
)

ADDRESS_SCHEMA = RecordSchema(
    name="Address",
    attributes=(
        Attribute(name="postNum"),
        Attribute(name="mainAddress"),
        Attribute(name="detailAddress"),
    ),
)

STUDENT_SCHEMA = RecordSchema(
    name="StudentProperties",
    attributes=(
        Attribute(name="user", type=ValueType.RECORD, record=USER_SCHEMA),
        Attribute(name="address", type=ValueType.RECORD, record=ADDRESS_SCHEMA),
    ),
)

# (record name, key prefix, schema)
BINDINGS = (
    ("app", "app", APP_SCHEMA),
    ("db", "db.maria", DATABASE_SCHEMA),
    ("student", "student", STUDENT_SCHEMA),
)
