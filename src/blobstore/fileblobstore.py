"""Core module for FileBlobStore"""

import atexit
import io
import os
import logging
from contextlib import closing
from tempfile import NamedTemporaryFile
import yaml
from blobstore import BlobStore, StoredObject
from blobstore import blobstore_config
from blobstore import objectcodec
from blobstore.fileblobstore_exceptions import (
    AlreadyInitialized,
    InvalidAddress,
    ObjectNotFound,
    StoreConfigError,
    StoreReadError,
    StoreWriteError,
    UnsupportedKind,
)


class FileBlobStore(BlobStore):
    """FileBlobStore is a content-addressable object store on a local file system. Objects
    are addressed by the SHA-1 hex digest of their canonical encoding and kept zlib-compressed
    in the bucket layout git uses for loose objects, so existing readers of that layout can
    read what FileBlobStore writes (and the other way around).

    FileBlobStore is constructed from a properties dictionary containing the required keys
    (see below). Construction does not touch the disk beyond reading an existing
    configuration file; call `initialize` to create a new store. If a configuration file
    'blobstore.yaml' is present at the store path, the given properties must match it.

    FileBlobStore keeps no state between calls: every `put` and `get` is an independent
    transaction against the file system, and writers rely only on whole-file renames for
    concurrency safety.

    :param dict properties: A Python dictionary with the following keys (and values):
        - store_path (str): Path to the store root directory (e.g. ".git").
        - store_compression_level (int): zlib compression level, -1 to 9.
    """

    # Property (blobstore configuration) requirements
    property_required_keys = [
        "store_path",
        "store_compression_level",
    ]
    # Permissions settings for writing files and creating directories
    # Objects are immutable once written
    fmode = 0o444
    dmode = 0o755

    def __init__(self, properties=None):
        if properties:
            checked_properties = self._validate_properties(properties)
            prop_store_path, prop_store_compression_level = [
                checked_properties[property_name]
                for property_name in self.property_required_keys
            ]

            self.root = str(prop_store_path)
            self.blobstore_configuration_yaml = os.path.join(
                self.root, blobstore_config.CONFIG_FILE
            )
            self._verify_blobstore_properties(checked_properties)

            self.compression_level = prop_store_compression_level
            self.objects = os.path.join(self.root, blobstore_config.OBJECTS_DIR)
            self.refs = os.path.join(self.root, blobstore_config.REFS_DIR)
            self.head = os.path.join(self.root, blobstore_config.HEAD_FILE)
            self.depth = blobstore_config.DIR_DEPTH
            self.width = blobstore_config.DIR_WIDTH
            logging.debug("FileBlobStore - Properties verified. Store root: %s", self.root)
        else:
            exception_string = (
                "FileBlobStore - BlobStore properties must be supplied."
                + f" Properties: {properties}"
            )
            logging.debug(exception_string)
            raise ValueError(exception_string)

    # Configuration and Related Methods

    @staticmethod
    def load_properties(store_path):
        """Get the properties of the store at `store_path`. Values recorded in its
        'blobstore.yaml' take precedence; a store without one (e.g. created by other
        tooling) gets the default values.

        :param str store_path: Path to the store root directory.

        :raises StoreConfigError: If 'blobstore.yaml' exists but cannot be read, is not
            valid YAML or lacks ``store_compression_level``.

        :return: Properties with the keys ``store_path`` and ``store_compression_level``.
        :rtype: dict
        """
        properties = {
            "store_path": str(store_path),
            "store_compression_level": blobstore_config.COMPRESSION_LEVEL,
        }
        blobstore_yaml_path = os.path.join(store_path, blobstore_config.CONFIG_FILE)
        if os.path.exists(blobstore_yaml_path):
            try:
                with open(blobstore_yaml_path, "r", encoding="utf-8") as bs_yaml_file:
                    yaml_data = yaml.safe_load(bs_yaml_file)
            except (OSError, UnicodeDecodeError, yaml.YAMLError) as err:
                exception_string = (
                    "FileBlobStore - load_properties: Unable to read configuration file"
                    + f" {blobstore_yaml_path}: {err}"
                )
                logging.error(exception_string)
                raise StoreConfigError(exception_string) from err
            if not isinstance(yaml_data, dict) or "store_compression_level" not in yaml_data:
                exception_string = (
                    "FileBlobStore - load_properties: Configuration file"
                    + f" {blobstore_yaml_path} has no store_compression_level."
                )
                logging.error(exception_string)
                raise StoreConfigError(exception_string)
            properties["store_compression_level"] = yaml_data["store_compression_level"]
            logging.debug(
                "FileBlobStore - load_properties: Retrieved properties from: %s",
                blobstore_yaml_path,
            )
        return properties

    def _write_properties(self):
        """Writes 'blobstore.yaml' to FileBlobStore's root directory."""
        blobstore_configuration_yaml = self._build_blobstore_yaml_string(
            self.compression_level
        )
        try:
            with open(
                self.blobstore_configuration_yaml, "w", encoding="utf-8"
            ) as bs_yaml_file:
                bs_yaml_file.write(blobstore_configuration_yaml)
        except OSError as err:
            exception_string = (
                "FileBlobStore - write_properties: Unable to write configuration file"
                + f" {self.blobstore_configuration_yaml}: {err}"
            )
            logging.error(exception_string)
            raise StoreWriteError(exception_string) from err

        logging.debug(
            "FileBlobStore - write_properties: Configuration file written to: %s",
            self.blobstore_configuration_yaml,
        )

    @staticmethod
    def _build_blobstore_yaml_string(store_compression_level):
        """Build a YAML string representing the configuration for a BlobStore.

        :param int store_compression_level: zlib compression level.

        :return: A YAML string representing the configuration for a BlobStore.
        :rtype: str
        """
        return (
            "# Default configuration variables for BlobStore\n"
            "\n"
            "############### Compression ###############\n"
            "# zlib compression level used when writing objects, -1 selects zlib's default\n"
            "# Objects written with different levels still share the same address\n"
            f"store_compression_level: {store_compression_level}\n"
        )

    def _verify_blobstore_properties(self, properties):
        """Compare the given properties with an existing 'blobstore.yaml' (if any) and
        throw an exception on a mismatch.

        :param dict properties: BlobStore properties.
        """
        if not os.path.exists(self.blobstore_configuration_yaml):
            return
        logging.debug(
            "FileBlobStore - Config found (blobstore.yaml) at {%s}. Verifying properties.",
            self.blobstore_configuration_yaml,
        )
        blobstore_yaml_dict = self.load_properties(self.root)
        for key in self.property_required_keys:
            # 'store_path' is required but not saved in `blobstore.yaml`
            if key != "store_path" and blobstore_yaml_dict[key] != properties[key]:
                exception_string = (
                    f"FileBlobStore - Given properties ({key}: {properties[key]}) does not"
                    + f" match. BlobStore configuration ({key}: {blobstore_yaml_dict[key]})"
                    + f" found at: {self.blobstore_configuration_yaml}"
                )
                logging.critical(exception_string)
                raise ValueError(exception_string)

    def _validate_properties(self, properties):
        """Validate a properties dictionary by checking if it contains all the
        required keys and non-None values.

        :param dict properties: Dictionary containing fileblobstore properties.

        :raises KeyError: If key is missing from the required keys.
        :raises ValueError: If value is missing for a required key, or the compression
            level is out of range.
        :raises TypeError: If the compression level is not an integer.

        :return: The given properties object (that has been validated).
        :rtype: dict
        """
        if not isinstance(properties, dict):
            exception_string = (
                "FileBlobStore - _validate_properties: Invalid argument -"
                + " expected a dictionary."
            )
            logging.debug(exception_string)
            raise ValueError(exception_string)

        for key in self.property_required_keys:
            if key not in properties:
                exception_string = (
                    "FileBlobStore - _validate_properties: Missing required"
                    + f" key: {key}."
                )
                logging.debug(exception_string)
                raise KeyError(exception_string)
            if properties.get(key) is None:
                exception_string = (
                    "FileBlobStore - _validate_properties: Value for key:"
                    + f" {key} is none."
                )
                logging.debug(exception_string)
                raise ValueError(exception_string)

        level = properties["store_compression_level"]
        if isinstance(level, bool) or not isinstance(level, int):
            exception_string = (
                "FileBlobStore - _validate_properties: store_compression_level must be"
                + f" an integer. Value: {level}. Arg Type: {type(level)}."
            )
            logging.error(exception_string)
            raise TypeError(exception_string)
        if level not in blobstore_config.COMPRESSION_LEVEL_RANGE:
            exception_string = (
                "FileBlobStore - _validate_properties: store_compression_level must be"
                + f" between -1 and 9. Value: {level}."
            )
            logging.error(exception_string)
            raise ValueError(exception_string)
        return properties

    # Public API / BlobStore Interface Methods

    def initialize(self):
        if self._is_store():
            exception_string = (
                f"FileBlobStore - initialize: A store already exists at: {self.root}"
            )
            logging.error(exception_string)
            raise AlreadyInitialized(exception_string)

        logging.debug("FileBlobStore - initialize: Creating store at: %s", self.root)
        self._create_path(self.root)
        self._create_path(self.objects)
        self._create_path(self.refs)
        try:
            # Must stay byte-exact, no newline translation
            with open(self.head, "w", encoding="utf-8", newline="") as head_file:
                head_file.write(blobstore_config.HEAD_CONTENTS)
        except OSError as err:
            exception_string = (
                f"FileBlobStore - initialize: Unable to write {self.head}: {err}"
            )
            logging.error(exception_string)
            raise StoreWriteError(exception_string) from err
        self._write_properties()
        logging.info("FileBlobStore - initialize: Store initialized at: %s", self.root)

    def put(self, kind, payload):
        logging.debug("FileBlobStore - put: Request to put a %s object.", kind)
        if kind not in objectcodec.SUPPORTED_KINDS:
            kind_name = getattr(kind, "value", kind)
            exception_string = (
                f"FileBlobStore - put: Unable to store object of unsupported kind: {kind_name}"
            )
            logging.error(exception_string)
            raise UnsupportedKind(exception_string, kind=kind_name)

        canonical_bytes = objectcodec.encode(kind, payload)
        address = objectcodec.address_of(canonical_bytes)
        abs_file_path = self._build_path(address)

        # Same address, same content: an existing entry is left as is
        if os.path.isfile(abs_file_path):
            logging.debug(
                "FileBlobStore - put: Object already exists for address: %s", address
            )
            return address

        self._create_path(os.path.dirname(abs_file_path))
        compressed_bytes = objectcodec.compress(canonical_bytes, self.compression_level)
        self._move_into_place(compressed_bytes, abs_file_path)
        logging.debug(
            "FileBlobStore - put: Successfully stored object for address: %s", address
        )
        return address

    def get(self, address):
        logging.debug("FileBlobStore - get: Request to get object for: %s", address)
        address = self._check_address(address, "get")
        abs_file_path = self._build_path(address)

        try:
            obj_file = io.open(abs_file_path, "rb")
        except (FileNotFoundError, NotADirectoryError, IsADirectoryError) as err:
            exception_string = (
                f"FileBlobStore - get: No object found for address: {address}"
                + f" at: {abs_file_path}"
            )
            logging.error(exception_string)
            raise ObjectNotFound(exception_string) from err
        except OSError as err:
            exception_string = (
                f"FileBlobStore - get: Unable to open object for address: {address}"
                + f" at: {abs_file_path}: {err}"
            )
            logging.error(exception_string)
            raise StoreReadError(exception_string) from err

        with closing(obj_file):
            kind, payload = objectcodec.decode_stream(
                objectcodec.ZlibStream(obj_file, address), address
            )
        logging.debug(
            "FileBlobStore - get: Retrieved %s object (%s bytes) for address: %s",
            kind.value,
            len(payload),
            address,
        )
        return StoredObject(kind, payload)

    def exists(self, address):
        address = self._check_address(address, "exists")
        return os.path.isfile(self._build_path(address))

    # FileBlobStore Core Methods

    def _is_store(self):
        """Check whether the store root already looks like a store."""
        return (
            os.path.isdir(self.objects)
            or os.path.exists(self.head)
            or os.path.exists(self.blobstore_configuration_yaml)
        )

    def _move_into_place(self, data, abs_file_path):
        """Write `data` to a temporary file in the destination's directory and rename it
        onto `abs_file_path`, so the entry only ever becomes visible complete.

        :param bytes data: Bytes to write.
        :param str abs_file_path: Final location of the entry.
        """
        tmp, delete_tmp_file = self._mktmpfile(os.path.dirname(abs_file_path))
        try:
            with tmp as tmp_file:
                tmp_file.write(data)
            os.replace(tmp.name, abs_file_path)
        except OSError as err:
            exception_string = (
                f"FileBlobStore - _move_into_place: Unable to write {abs_file_path}: {err}"
            )
            logging.error(exception_string)
            delete_tmp_file()
            raise StoreWriteError(exception_string) from err
        finally:
            atexit.unregister(delete_tmp_file)

    def _mktmpfile(self, path):
        """Create a temporary file at the given path ready to be written. The file is
        removed at interpreter exit unless the caller unregisters the returned cleanup
        function from `atexit` first.

        :param str path: Path to the file location.

        :return: tuple - (file object with a file-like interface, cleanup function)
        """
        try:
            tmp = NamedTemporaryFile(dir=path, prefix="tmp_obj_", delete=False)
        except OSError as err:
            exception_string = (
                f"FileBlobStore - _mktmpfile: Unable to create temp file in {path}: {err}"
            )
            logging.error(exception_string)
            raise StoreWriteError(exception_string) from err

        # Delete tmp file if python interpreter crashes or thread is interrupted
        def delete_tmp_file():
            if os.path.exists(tmp.name):
                os.remove(tmp.name)

        atexit.register(delete_tmp_file)

        # Ensure tmp file is created with desired permissions
        if self.fmode is not None:
            oldmask = os.umask(0)
            try:
                os.chmod(tmp.name, self.fmode)
            finally:
                os.umask(oldmask)
        return tmp, delete_tmp_file

    def _check_address(self, address, method):
        """Check that `address` is exactly 40 hex characters and return it lowercased;
        throws an exception if not. Does not touch the file system.

        :param str address: Content address to check.
        :param str method: Name of the calling method, for error messages.

        :return: The normalized address.
        :rtype: str
        """
        if not objectcodec.is_valid_address(address):
            exception_string = (
                f"FileBlobStore - {method}: address must be"
                + f" {blobstore_config.ADDRESS_LENGTH} hex characters, address: {address}"
            )
            logging.error(exception_string)
            raise InvalidAddress(exception_string)
        return address.lower()

    def _shard(self, digest):
        """Generates a list given a digest of `self.depth` number of tokens with width
        `self.width` from the first part of the digest plus the remainder.

        Example:
            ['45', 'b983be36b73c0788dc9cbcb76cbb80fc7bb057']

        :param str digest: The string to be divided into tokens.

        :return: A list containing the tokens of fixed width.
        :rtype: list
        """

        def compact(items):
            """Return only truthy elements of `items`."""
            return [item for item in items if item]

        # This creates a list of `depth` number of tokens with width
        # `width` from the first part of the id plus the remainder.
        hierarchical_list = compact(
            [digest[i * self.width : self.width * (i + 1)] for i in range(self.depth)]
            + [digest[self.depth * self.width :]]
        )

        return hierarchical_list

    def _create_path(self, path):
        """Physically create the folder path (and all intermediate ones) on disk.
        An existing directory is not an error.

        :param str path: The path to create.
        :raises StoreWriteError: If the path cannot be created or exists but is not
            a directory.
        """
        try:
            os.makedirs(path, self.dmode, exist_ok=True)
        except OSError as err:
            exception_string = (
                f"FileBlobStore - _create_path: Unable to create directory {path}: {err}"
            )
            logging.error(exception_string)
            raise StoreWriteError(exception_string) from err

    def _build_path(self, address):
        """Build the absolute file path for a given content address.

        :param str address: A content address to build a file path for.

        :return: An absolute file path for the specified address.
        :rtype: str
        """
        paths = self._shard(address)
        absolute_path = os.path.join(self.objects, *paths)
        return absolute_path

    def _count(self):
        """Return the number of object entries in the store (temp files excluded).

        :return: Number of object files in the objects directory.
        :rtype: int
        """
        count = 0
        for _, _, files in os.walk(self.objects):
            for file in files:
                if not file.startswith("tmp_obj_"):
                    count += 1
        return count
