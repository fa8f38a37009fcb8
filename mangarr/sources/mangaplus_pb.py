"""
Protobuf messages of the MANGA Plus web API.

Only the fields mangarr reads are declared; protobuf skips unknown fields
when parsing, so the rest of the API response is ignored.
"""

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

PACKAGE = "mangaplus"

_FIELD = descriptor_pb2.FieldDescriptorProto

# message name -> (field name, number, type, message type or None, repeated)
_MESSAGES = {
    "Title": [
        ("title_id", 1, _FIELD.TYPE_UINT32, None, False),
        ("name", 2, _FIELD.TYPE_STRING, None, False),
        ("author", 3, _FIELD.TYPE_STRING, None, False),
    ],
    "Chapter": [
        ("title_id", 1, _FIELD.TYPE_UINT32, None, False),
        ("chapter_id", 2, _FIELD.TYPE_UINT32, None, False),
        ("name", 3, _FIELD.TYPE_STRING, None, False),
        ("sub_title", 4, _FIELD.TYPE_STRING, None, False),
    ],
    "ChapterListGroup": [
        ("chapter_numbers", 1, _FIELD.TYPE_STRING, None, False),
        ("first_chapter_list", 2, _FIELD.TYPE_MESSAGE, "Chapter", True),
        ("mid_chapter_list", 3, _FIELD.TYPE_MESSAGE, "Chapter", True),
        ("last_chapter_list", 4, _FIELD.TYPE_MESSAGE, "Chapter", True),
    ],
    "TitleDetailView": [
        ("title", 1, _FIELD.TYPE_MESSAGE, "Title", False),
        ("chapter_list_group", 28, _FIELD.TYPE_MESSAGE, "ChapterListGroup", True),
    ],
    "MangaPage": [
        ("image_url", 1, _FIELD.TYPE_STRING, None, False),
        ("width", 2, _FIELD.TYPE_UINT32, None, False),
        ("height", 3, _FIELD.TYPE_UINT32, None, False),
        ("encryption_key", 5, _FIELD.TYPE_STRING, None, False),
    ],
    "Page": [
        ("manga_page", 1, _FIELD.TYPE_MESSAGE, "MangaPage", False),
    ],
    "MangaViewer": [
        ("pages", 1, _FIELD.TYPE_MESSAGE, "Page", True),
        ("chapter_id", 2, _FIELD.TYPE_UINT32, None, False),
        ("title_name", 5, _FIELD.TYPE_STRING, None, False),
        ("chapter_name", 6, _FIELD.TYPE_STRING, None, False),
    ],
    "SuccessResult": [
        ("title_detail_view", 8, _FIELD.TYPE_MESSAGE, "TitleDetailView", False),
        ("manga_viewer", 10, _FIELD.TYPE_MESSAGE, "MangaViewer", False),
    ],
    "Response": [
        ("success", 1, _FIELD.TYPE_MESSAGE, "SuccessResult", False),
    ],
}


def _build_file() -> descriptor_pb2.FileDescriptorProto:
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="mangaplus/response.proto",
        package=PACKAGE,
        syntax="proto3",
    )
    for message_name, fields in _MESSAGES.items():
        message = file_proto.message_type.add(name=message_name)
        for field_name, number, field_type, type_name, repeated in fields:
            field = message.field.add(
                name=field_name,
                number=number,
                type=field_type,
                label=_FIELD.LABEL_REPEATED if repeated else _FIELD.LABEL_OPTIONAL,
            )
            if type_name:
                field.type_name = f".{PACKAGE}.{type_name}"
    return file_proto


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(_build_file().SerializeToString())

Response = message_factory.GetMessageClass(_pool.FindMessageTypeByName(f"{PACKAGE}.Response"))
