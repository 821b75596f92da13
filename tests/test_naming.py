"""
Тесты утилит именования
"""

from api_bridge.internal.utils.naming import (
    camel_case,
    escape_string,
    pascal_case,
    quote_property,
    sanitize_identifier,
    snake_case,
    split_words,
    to_enum_member_name,
    to_operation_name,
    to_type_name,
    unique_name,
)


class TestCaseConversion:
    """Тесты преобразования регистра"""

    def test_split_words(self):
        """Тест разбиения на слова по регистру и разделителям"""
        assert split_words("petId") == ["pet", "Id"]
        assert split_words("HTTPValidation-error") == ["HTTP", "Validation", "error"]
        assert split_words("  ") == []

    def test_pascal_and_camel(self):
        assert pascal_case("list_pets") == "ListPets"
        assert camel_case("ListPets") == "listPets"
        assert camel_case("get-user-by-id") == "getUserById"
        assert camel_case("") == ""

    def test_snake_case(self):
        assert snake_case("createdAt") == "created_at"


class TestIdentifiers:
    """Тесты допустимых идентификаторов TypeScript"""

    def test_sanitize_reserved_word(self):
        """Тест зарезервированных слов"""
        assert sanitize_identifier("delete") == "delete_"
        assert sanitize_identifier("class") == "class_"

    def test_sanitize_leading_digit(self):
        assert sanitize_identifier("2fa") == "_2fa"

    def test_sanitize_special_chars(self):
        assert sanitize_identifier("user-name.v2") == "user_name_v2"

    def test_quote_property(self):
        """Тест ключей объекта"""
        assert quote_property("name") == "name"
        assert quote_property("content-type") == "'content-type'"
        assert quote_property("it's") == "'it\\'s'"

    def test_escape_string(self):
        assert escape_string("a\nb") == "a\\nb"


class TestOperationNames:
    """Тесты имен операций и типов"""

    def test_operation_name_from_path(self):
        """Тест детерминированного имени операции"""
        assert to_operation_name("get", "/pets/{petId}") == "getPetsByPetId"
        assert to_operation_name("POST", "/pets") == "postPets"

    def test_type_name_from_path(self):
        assert to_type_name("/pets/{petId}") == "PetsByPetId"
        assert to_type_name("") == "Type"

    def test_unique_name_suffixes(self):
        """Тест суффиксов: первое имя без суффикса, далее с 2"""
        used = set()
        assert unique_name("listPets", used) == "listPets"
        assert unique_name("listPets", used) == "listPets2"
        assert unique_name("listPets", used) == "listPets3"
        assert used == {"listPets", "listPets2", "listPets3"}

    def test_enum_member_names(self):
        assert to_enum_member_name("available") == "Available"
        assert to_enum_member_name("in-stock") == "InStock"
        assert to_enum_member_name(1) == "Value1"
        assert to_enum_member_name(-2) == "ValueNeg2"
        assert to_enum_member_name("") == "Empty"
        assert to_enum_member_name("3d") == "Value3d"
