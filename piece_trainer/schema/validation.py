from typing import List, Literal
from pydantic import BaseModel, Field, ConfigDict


class ValidationIssue(BaseModel):
    field: str = Field(..., description="Config field where the issue occurred (e.g., 'vocab_size')")
    message: str = Field(..., description="Human-readable description of the validation issue")
    severity: Literal["error", "warning"] = Field(..., description="Severity level: 'error' or 'warning'")


class ValidationResult(BaseModel):
    is_valid: bool = Field(True, description="True if the spec passed all validation checks")
    issues: List[ValidationIssue] = Field(default_factory=list, description="List of validation issues found")

    def add(self, field: str, message: str, severity: str = "error") -> None:
        self.issues.append(ValidationIssue(field=field, message=message, severity=severity))
        if severity == "error":
            self.is_valid = False

    @property
    def errors(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == "error"]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == "warning"]

    model_config = ConfigDict(
        json_schema_extra = {
            "example": {
                "is_valid": False,
                "issues": [
                    {
                        "field": "character_coverage",
                        "message": "character_coverage must be in [0.98, 1.0], got 0.5",
                        "severity": "error"
                    },
                    {
                        "field": "mining_sentence_size",
                        "message": "mining_sentence_size is deprecated. Use input_sentence_size",
                        "severity": "warning"
                    }
                ]
            }
        }
    )
