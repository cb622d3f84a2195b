# import every table model so it registers in Base.metadata before create_all

from storefront.data.models.document import DocumentModel

__all__ = ["DocumentModel"]
