"""Click parameter type for statement format names."""

import click

from stmtkit.domain.entities import StatementFormat
from stmtkit.domain.errors import ValidationError


class FormatParamType(click.ParamType):
    """Accept any alias understood by StatementFormat.parse."""

    name = "format"

    def convert(self, value, param, ctx):
        if isinstance(value, StatementFormat):
            return value
        try:
            return StatementFormat.parse(value)
        except ValidationError as e:
            self.fail(str(e), param, ctx)


STATEMENT_FORMAT = FormatParamType()
