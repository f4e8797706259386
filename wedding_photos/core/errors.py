"""Error taxonomy shared by the storage adapter, the image transform and the routers.

Every error carries the Spanish message shown to guests. Routers map the
classes to HTTP status codes; nothing else about the failure reaches the
client.
"""


class GalleryError(Exception):
    """Base class for every failure the service reports."""

    status_code = 500
    default_message = "Ha ocurrido un error"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotConfiguredError(GalleryError):
    default_message = "Almacenamiento no configurado"


class BadRequestError(GalleryError, ValueError):
    """The caller sent something we refuse to process."""

    status_code = 400
    default_message = "Solicitud no válida"


class StorageError(GalleryError):
    """The object store or the catalog failed (network, auth, quota...)."""

    default_message = "Error del almacenamiento"


class TransformError(GalleryError):
    """Pillow could not decode or re-encode the image."""

    default_message = "Error al procesar la imagen"


class PhotoNotFoundError(GalleryError, KeyError):
    status_code = 404
    default_message = "Imagen no encontrada"

    def __str__(self):
        # KeyError would quote the message otherwise
        return self.message


class NoFileError(BadRequestError):
    default_message = "No se envió ninguna foto"


class UnsupportedTypeError(BadRequestError):
    default_message = "Tipo de archivo no permitido. Usa JPG, PNG, WebP o HEIC"


class FileTooLargeError(BadRequestError):
    default_message = "El archivo es muy grande. Máximo 10MB"
