from .models import ContentItem, ContentVersion, ContentFormatEnum
