"""
Lead Domain Models
"""
from pydantic import BaseModel
from typing import Optional, Dict, Any


class Lead(BaseModel):
    """One call target produced by the lead set builder. Immutable."""
    name: str = "Unknown"
    phone_e164: str
    email: Optional[str] = None

    model_config = {"frozen": True}

    @property
    def key(self) -> str:
        """Identity of the lead within one campaign run."""
        return self.phone_e164

    def to_customer(self) -> Dict[str, Any]:
        """Customer object understood by the voice platform."""
        customer = {"number": self.phone_e164, "name": self.name}
        if self.email:
            customer["email"] = self.email
        return customer
