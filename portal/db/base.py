# Esse arquivo reúne todos os modelos em um único lugar
# para que o Alembic e o init_db encontrem todas as tabelas no metadata.

from portal.db.base_class import Base
from portal.models.user import User
from portal.models.document_config import DocumentConfig
from portal.models.document import UploadedDocument
from portal.models.message_template import MessageTemplate
from portal.models.notification import Notification
