from pydantic import BaseModel, Field
from typing import List, Optional

class CategoryProgress(BaseModel):
    """Contagem de itens obrigatórios enviados em uma categoria."""
    category_id: str
    category_name: str
    uploaded: int
    required: int
    percent: float

class ProgressReport(BaseModel):
    """Resultado do cálculo de progresso de uma startup."""
    config_id: Optional[str] = None
    percent: float = Field(..., ge=0, le=100)
    uploaded_required: int
    total_required: int
    categories: List[CategoryProgress]
    uploaded_items: List[str] = Field(default_factory=list, description="Rótulos 'Categoria: Documento' já enviados")
    missing_items: List[str] = Field(default_factory=list, description="Rótulos 'Categoria: Documento' pendentes")
    can_submit: bool = False
