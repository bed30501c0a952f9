"""
Property test application.

Binds the ``app``, ``db.maria`` and ``student`` records, evaluates a set of
value expressions against the loaded configuration and logs every value.
"""

import logging
from typing import Any, Dict

from propbind.configuration import PropbindConfiguration, ValueType
from propbind.schemas import DEFAULT_GREETING

logger = logging.getLogger(__name__)

# Value expressions evaluated at startup: name -> (expression, target type, element type)
VALUE_EXPRESSIONS = {
    "project_name": ("${app.name}", ValueType.STRING, ValueType.STRING),
    "default_value": ("${app.defaultValue:%s}" % DEFAULT_GREETING, ValueType.STRING, ValueType.STRING),
    "friends": ("${app.friends}", ValueType.LIST, ValueType.STRING),
    "python_version": ("#{systemProperties['python.version']}", ValueType.STRING, ValueType.STRING),
    "python_version_with_default": ("#{systemProperties['python.version.my'] ?: '3.0'}", ValueType.STRING, ValueType.STRING),
    "friend_list": ("#{'${app.friends}'.split(',')}", ValueType.LIST, ValueType.STRING),
    "cutline": ("#{${app.cutline}}", ValueType.MAP, ValueType.INTEGER),
    "db_url": ("${db.maria.url}", ValueType.STRING, ValueType.STRING),
    "user_api_url": ("${api.user.url:}", ValueType.STRING, ValueType.STRING),
}


class PropertyTestApplication:
    """Reads the bound configuration and reports it through the log."""

    def __init__(self, configuration: PropbindConfiguration):
        self.configuration = configuration

    def evaluate_values(self) -> Dict[str, Any]:
        values: Dict[str, Any] = {}
        for name, (expression, target, element_type) in VALUE_EXPRESSIONS.items():
            if target == ValueType.MAP:
                values[name] = self.configuration.value(expression, target, value_type=element_type)
            else:
                values[name] = self.configuration.value(expression, target, item_type=element_type)
        return values

    def run(self) -> Dict[str, Any]:
        values = self.evaluate_values()

        logger.info(f"Project Name: {values['project_name']}")
        logger.info(f"Project Default Value: {values['default_value']}")
        for friend in values["friends"]:
            logger.info(f"Friend: {friend}")

        logger.info(f"System Prop: {values['python_version']}")
        logger.info(f"Python Version from System Prop: {values['python_version_with_default']}")
        for friend in values["friend_list"]:
            logger.info(f"Friend (split): {friend}")

        logger.info(f"Cutline Level: {values['cutline']}")
        logger.info(f"Project Name from env: {self.configuration.get('app.name')}")

        app = self.configuration.get_record("app")
        logger.info(f"AppProperties: {app.name}, {app.friends}, {app.cutline}")

        student = self.configuration.get_record("student")
        logger.info(f"Student Info : {student.user.name} {student.user.age} {student.user.subject}")
        logger.info(
            f"Address Info : {student.address.postNum} {student.address.mainAddress} {student.address.detailAddress}"
        )

        db = self.configuration.get_record("db")
        logger.info(f"DB Prop: {db.dbName}, {db.url}, {db.userName}, {db.password}")
        logger.info(f"DB Prop: {values['db_url']}")

        logger.info(f"User api url: {values['user_api_url']}")

        return {
            "values": values,
            "records": {name: record.to_dict() for name, record in self.configuration.records.items()},
        }
