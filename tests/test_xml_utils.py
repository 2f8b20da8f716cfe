"""Tests for Atmos XML parsing and rendering."""

import logging
import xml.etree.ElementTree as ET
from datetime import datetime, timezone

import pytest

from atmosclient.errors import ParseError
from atmosclient.identifiers import ObjectId, ObjectPath
from atmosclient.results import ContentLengthRange, FormField, Policy, Source
from atmosclient.xml_utils import (
    format_datetime,
    parse_access_token,
    parse_access_token_list,
    parse_datetime,
    parse_directory_list,
    parse_object_info,
    parse_object_list,
    parse_object_list_with_metadata,
    parse_service_information,
    parse_version_list,
    render_policy,
)

OID_A = "4924264aa10573d404924281caf51f049242d810edc8"
OID_B = "4924264aa10573d404924281caf51f049242d810edc9"
NS = "http://www.emc.com/cos/"


class TestObjectLists:
    """Tests for object and version listings."""

    def test_object_ids(self):
        """Every ObjectID element is returned in order."""
        body = (
            f'<ListObjectsResponse xmlns="{NS}">'
            f"<Object><ObjectID>{OID_A}</ObjectID></Object>"
            f"<Object><ObjectID>{OID_B}</ObjectID></Object>"
            "</ListObjectsResponse>"
        ).encode()
        assert parse_object_list(body) == [ObjectId(OID_A), ObjectId(OID_B)]

    def test_without_namespace(self):
        """Documents without the Atmos namespace parse the same way."""
        body = f"<ListObjectsResponse><ObjectID>{OID_A}</ObjectID></ListObjectsResponse>".encode()
        assert parse_object_list(body) == [ObjectId(OID_A)]

    def test_versions(self):
        """Version listings use OID elements."""
        body = (
            f'<ListVersionsResponse xmlns="{NS}">'
            f"<Ver><VerNum>0</VerNum><OID>{OID_B}</OID></Ver>"
            "</ListVersionsResponse>"
        ).encode()
        assert parse_version_list(body) == [ObjectId(OID_B)]

    def test_with_metadata(self):
        """System and user metadata lists are parsed; only user metadata can be listable."""
        body = (
            "<ListObjectsResponse><Object>"
            f"<ObjectID>{OID_A}</ObjectID>"
            "<SystemMetadataList><Metadata><Name>size</Name><Value>12</Value>"
            "<Listable>true</Listable></Metadata></SystemMetadataList>"
            "<UserMetadataList>"
            "<Metadata><Name>color</Name><Value>red</Value><Listable>true</Listable></Metadata>"
            "<Metadata><Name>shape</Name><Value></Value><Listable>false</Listable></Metadata>"
            "</UserMetadataList>"
            "</Object></ListObjectsResponse>"
        ).encode()
        [result] = parse_object_list_with_metadata(body)
        assert result.id == ObjectId(OID_A)
        assert result.system_metadata["size"].value == "12"
        assert result.system_metadata["size"].listable is False
        assert result.user_metadata["color"].listable is True
        assert result.user_metadata["shape"].value == ""

    def test_malformed(self):
        """Malformed XML raises ParseError carrying the body."""
        with pytest.raises(ParseError) as exc_info:
            parse_object_list(b"<ListObjectsResponse>")
        assert exc_info.value.body == b"<ListObjectsResponse>"

    def test_invalid_object_id(self):
        """An ObjectID that is not an object ID is a parse error."""
        with pytest.raises(ParseError):
            parse_object_list(b"<L><ObjectID>nope</ObjectID></L>")


class TestDirectoryList:
    """Tests for parse_directory_list()."""

    def test_entries(self):
        """Files and directories are joined to the parent path."""
        body = (
            f'<ListDirectoryResponse xmlns="{NS}"><DirectoryList>'
            f"<DirectoryEntry><ObjectID>{OID_A}</ObjectID><FileType>regular</FileType>"
            "<Filename>a.txt</Filename></DirectoryEntry>"
            f"<DirectoryEntry><ObjectID>{OID_B}</ObjectID><FileType>directory</FileType>"
            "<Filename>sub</Filename></DirectoryEntry>"
            "</DirectoryList></ListDirectoryResponse>"
        ).encode()
        entries = parse_directory_list(body, ObjectPath("/dir/"))
        assert [e.path for e in entries] == [ObjectPath("/dir/a.txt"), ObjectPath("/dir/sub/")]
        assert not entries[0].is_directory
        assert entries[1].is_directory
        assert entries[1].id == ObjectId(OID_B)

    def test_missing_filename(self):
        """An entry without Filename is a parse error."""
        body = (
            f"<ListDirectoryResponse><DirectoryEntry><ObjectID>{OID_A}</ObjectID>"
            "<FileType>regular</FileType></DirectoryEntry></ListDirectoryResponse>"
        ).encode()
        with pytest.raises(ParseError):
            parse_directory_list(body, ObjectPath("/dir/"))


class TestServiceInformation:
    """Tests for parse_service_information()."""

    def test_version_and_headers(self):
        """The version comes from XML, capabilities from headers."""
        body = b"<Service><Version><Atmos>2.1.4</Atmos></Version></Service>"
        headers = {"x-emc-support-utf8": "true", "x-emc-features": "object, namespace,keypool"}
        info = parse_service_information(body, headers)
        assert info.atmos_version == "2.1.4"
        assert info.unicode_metadata_supported is True
        assert info.features == ["object", "namespace", "keypool"]
        assert info.has_feature("keypool")

    def test_no_capability_headers(self):
        """Without capability headers nothing is advertised."""
        info = parse_service_information(b"<Service><Atmos>1.4</Atmos></Service>", {})
        assert info.unicode_metadata_supported is False
        assert info.features == []


class TestObjectInfo:
    """Tests for parse_object_info()."""

    BODY = (
        f'<GetObjectInfoResponse xmlns="{NS}">'
        f"<objectId>{OID_A}</objectId>"
        "<selection>geographic</selection>"
        "<numReplicas>2</numReplicas>"
        "<replicas>"
        "<replica><id>3</id><type>sync</type><current>true</current>"
        "<location>Boston</location><storageType>Normal</storageType></replica>"
        "<replica><id>5</id><type>async</type><current>false</current>"
        "<location>Chicago</location><storageType>Normal</storageType></replica>"
        "</replicas>"
        "<retention><enabled>false</enabled><endAt></endAt></retention>"
        "<expiration><enabled>true</enabled><endAt>2030-01-02T03:04:05Z</endAt></expiration>"
        "</GetObjectInfoResponse>"
    ).encode()

    def test_fields(self):
        """Replicas, retention and expiration are parsed."""
        info = parse_object_info(self.BODY)
        assert info.object_id == ObjectId(OID_A)
        assert info.selection == "geographic"
        assert [r.location for r in info.replicas] == ["Boston", "Chicago"]
        assert info.replicas[0].current is True
        assert info.replicas[1].type == "async"
        assert info.retention.enabled is False
        assert info.retention.end_at is None
        assert info.expiration.enabled is True
        assert info.expiration.end_at == datetime(2030, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        assert info.raw_xml == self.BODY.decode()

    def test_unknown_element_logged(self, caplog):
        """Unknown elements are skipped with a warning."""
        body = (
            f"<GetObjectInfoResponse><objectId>{OID_A}</objectId>"
            "<shiny/></GetObjectInfoResponse>"
        )
        with caplog.at_level(logging.WARNING, logger="atmosclient.xml_utils"):
            info = parse_object_info(body.encode())
        assert info.object_id == ObjectId(OID_A)
        assert "shiny" in caplog.text

    def test_bad_date(self):
        """An invalid date is a parse error."""
        body = (
            "<GetObjectInfoResponse><expiration><enabled>true</enabled>"
            "<endAt>tomorrow</endAt></expiration></GetObjectInfoResponse>"
        ).encode()
        with pytest.raises(ParseError):
            parse_object_info(body)


class TestDatetimes:
    """Tests for parse_datetime() / format_datetime()."""

    def test_format(self):
        """Datetimes render with milliseconds and a Z suffix."""
        value = datetime(2030, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)
        assert format_datetime(value) == "2030-01-02T03:04:05.678Z"

    def test_parse_z(self):
        """A trailing Z is UTC."""
        assert parse_datetime("2030-01-02T03:04:05.678Z") == datetime(
            2030, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc
        )

    def test_parse_empty(self):
        """Empty values are None."""
        assert parse_datetime("") is None
        assert parse_datetime(None) is None


class TestPolicy:
    """Tests for render_policy()."""

    def test_full_policy(self):
        """Every policy field is rendered as its XML element."""
        policy = Policy(
            expiration=datetime(2030, 1, 1, tzinfo=timezone.utc),
            max_uploads=1,
            max_downloads=5,
            source=Source(allow=["10.0.0.0/8"], disallow=["10.1.0.0/16"]),
            content_length_range=ContentLengthRange(from_=10, to=1024),
            form_fields=[FormField(name="x-emc-meta", optional=True, contains=["a&b"])],
        )
        root = ET.fromstring(render_policy(policy).encode())
        assert root.tag == "policy"
        assert root.findtext("expiration") == "2030-01-01T00:00:00.000Z"
        assert root.findtext("max-uploads") == "1"
        assert root.findtext("max-downloads") == "5"
        assert root.findtext("source/allow") == "10.0.0.0/8"
        assert root.findtext("source/disallow") == "10.1.0.0/16"
        length_range = root.find("content-length-range")
        assert length_range.get("from") == "10"
        assert length_range.get("to") == "1024"
        form_field = root.find("form-field")
        assert form_field.get("name") == "x-emc-meta"
        assert form_field.get("optional") == "true"
        assert form_field.findtext("contains") == "a&b"

    def test_empty_policy(self):
        """An empty policy is just the root element."""
        root = ET.fromstring(render_policy(Policy()).encode())
        assert list(root) == []


class TestAccessTokens:
    """Tests for access token parsing."""

    TOKEN = (
        "<access-token>"
        "<access-token-id>tok123</access-token-id>"
        "<expiration>2030-01-01T00:00:00.000Z</expiration>"
        "<max-uploads>0</max-uploads>"
        "<max-downloads>3</max-downloads>"
        "<source><allow>1.2.3.0/24</allow></source>"
        '<content-length-range from="0" to="100"/>'
        '<form-field name="x-emc-tags"><eq>blue</eq></form-field>'
        f"<object-id>{OID_A}</object-id>"
        "<uid>a1b2c3/user1</uid>"
        "</access-token>"
    )

    def test_single_token(self):
        """Every token field is read."""
        token = parse_access_token(self.TOKEN.encode())
        assert token.id == "tok123"
        assert token.expiration == datetime(2030, 1, 1, tzinfo=timezone.utc)
        assert token.max_uploads == 0
        assert token.max_downloads == 3
        assert token.source.allow == ["1.2.3.0/24"]
        assert token.content_length_range == ContentLengthRange(from_=0, to=100)
        assert token.form_fields == [FormField(name="x-emc-tags", eq=["blue"])]
        assert token.object_id == ObjectId(OID_A)
        assert token.path is None
        assert token.uid == "a1b2c3/user1"

    def test_token_list(self):
        """Listings return every token in the access-tokens-list."""
        body = (
            "<list-access-tokens-result><access-tokens-list>"
            + self.TOKEN
            + "<access-token><access-token-id>tok456</access-token-id>"
            "<path>/shared/file.txt</path></access-token>"
            "</access-tokens-list></list-access-tokens-result>"
        ).encode()
        tokens = parse_access_token_list(body)
        assert [t.id for t in tokens] == ["tok123", "tok456"]
        assert tokens[1].path == ObjectPath("/shared/file.txt")

    def test_missing_id(self):
        """A token without an ID is a parse error."""
        with pytest.raises(ParseError):
            parse_access_token(b"<access-token><uid>u</uid></access-token>")
