"""
========================
Raw SQL expression type.
========================

An Expression marks a value as raw SQL. Grammars emit it verbatim: it is
never quoted, escaped or bound as a parameter. The caller is responsible for
the safety of anything wrapped in an Expression.

Example:
    >>> from query.expression import Expression
    >>> 
    >>> builder.select(Expression('count(*) as total'))
"""

from typing import Any

from query.exceptions import InvalidArgumentError


class Expression:
    """Raw SQL fragment that bypasses quoting and parameter binding.
    
    Attributes:
        value: The raw SQL value
    """
    
    def __init__(self, value: Any):
        self.value = value
    
    def get_value(self) -> Any:
        """Get the raw value of the expression."""
        return self.value
    
    def __str__(self) -> str:
        return str(self.value)
    
    def __repr__(self) -> str:
        return f"Expression({self.value!r})"
    
    def __eq__(self, other: Any) -> bool:
        return isinstance(other, Expression) and other.value == self.value
    
    def __hash__(self) -> int:
        return hash((Expression, str(self.value)))


class JsonExpression(Expression):
    """Expression holding the JSON binding parameter for a value.
    
    Booleans are inlined as JSON literals, raw expressions pass through and
    every other JSON-representable value becomes a placeholder.
    """
    
    def __init__(self, value: Any):
        super().__init__(self._get_json_binding_parameter(value))
    
    @staticmethod
    def _get_json_binding_parameter(value: Any) -> str:
        if isinstance(value, Expression):
            return value.get_value()
        
        # bool is a subclass of int, check it first
        if isinstance(value, bool):
            return 'true' if value else 'false'
        
        if value is None or isinstance(value, (int, float, str, list, tuple, dict)):
            return '?'
        
        raise InvalidArgumentError(
            f"JSON value is of illegal type: {type(value).__name__}"
        )
