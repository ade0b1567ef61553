# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
MongoDB service layer with connection pooling and the MongoDB-backed store.
"""

import os
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar
from pymongo import MongoClient, ASCENDING, DESCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import (
    ConnectionFailure,
    ServerSelectionTimeoutError,
    DuplicateKeyError
)
from bson import ObjectId
from bson.errors import InvalidId
from pydantic.alias_generators import to_camel

from relief.models.entities import (
    AuditLog,
    Barangay,
    Claim,
    DonationSchedule,
    Family,
    FamilyMember,
    SENIOR_CITIZEN_MIN_AGE,
    User,
    VerifiableAttribute
)
from relief.models.enums import AttributeKind, ClaimStatus, ScheduleStatus, UserRole, VerificationStatus
from .store import ConflictError, DuplicateEntryError, ReliefStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

BARANGAYS = "barangays"
USERS = "users"
FAMILIES = "families"
FAMILY_MEMBERS = "family_members"
SCHEDULES = "donation_schedules"
CLAIMS = "claims"
AUDIT_LOGS = "audit_logs"

PENDING_RESIDENT = {"role": UserRole.RESIDENT.value, "isActive": False}


class MongoDBService:
    """MongoDB connection management with connection pooling."""

    def __init__(self, connection_string: str = None, database_name: str = None):
        """Initialize MongoDB service with connection pooling."""
        self.connection_string = connection_string or os.getenv(
            'MONGODB_URI',
            'mongodb://localhost:27017/barangay_relief_dev'
        )
        self.database_name = database_name or os.getenv('MONGODB_DATABASE', 'barangay_relief_dev')
        self._client: Optional[MongoClient] = None
        self._database: Optional[Database] = None

        # Connection pool settings
        self.max_pool_size = int(os.getenv('MONGODB_MAX_POOL_SIZE', '10'))
        self.min_pool_size = int(os.getenv('MONGODB_MIN_POOL_SIZE', '1'))
        self.max_idle_time_ms = int(os.getenv('MONGODB_MAX_IDLE_TIME_MS', '30000'))
        self.server_selection_timeout_ms = int(os.getenv('MONGODB_SERVER_SELECTION_TIMEOUT_MS', '5000'))

        logger.info(f"MongoDB service initialized for database: {self.database_name}")

    @property
    def client(self) -> MongoClient:
        """Get MongoDB client with connection pooling."""
        if self._client is None:
            try:
                self._client = MongoClient(
                    self.connection_string,
                    maxPoolSize=self.max_pool_size,
                    minPoolSize=self.min_pool_size,
                    maxIdleTimeMS=self.max_idle_time_ms,
                    serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                    retryWrites=True,
                    retryReads=True
                )
                # Test connection
                self._client.admin.command('ping')
                logger.info("MongoDB connection established successfully")
            except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                logger.error(f"Failed to connect to MongoDB: {e}")
                raise

        return self._client

    @property
    def database(self) -> Database:
        """Get MongoDB database."""
        if self._database is None:
            self._database = self.client[self.database_name]
        return self._database

    def get_collection(self, collection_name: str) -> Collection:
        """Get MongoDB collection."""
        return self.database[collection_name]

    def close_connection(self) -> None:
        """Close MongoDB connection."""
        if self._client:
            self._client.close()
            self._client = None
            self._database = None
            logger.info("MongoDB connection closed")

    def health_check(self) -> Dict[str, Any]:
        """Check MongoDB connection health."""
        try:
            result = self.client.admin.command('ping')
            server_info = self.client.server_info()

            return {
                'status': 'healthy',
                'ping': result.get('ok') == 1,
                'version': server_info.get('version'),
                'database': self.database_name,
                'connection_pool_size': self.max_pool_size
            }
        except Exception as e:
            logger.error(f"MongoDB health check failed: {e}")
            return {
                'status': 'unhealthy',
                'error': str(e),
                'database': self.database_name
            }

    # Index Management

    def create_indexes(self) -> None:
        """Create unique and performance indexes for all collections."""
        try:
            logger.info("Creating MongoDB indexes...")

            barangays = self.get_collection(BARANGAYS)
            barangays.create_index("code", unique=True)

            users = self.get_collection(USERS)
            users.create_index([("barangayId", ASCENDING), ("role", ASCENDING), ("isActive", ASCENDING)])

            families = self.get_collection(FAMILIES)
            families.create_index("headId", unique=True)
            families.create_index([("barangayId", ASCENDING)])

            members = self.get_collection(FAMILY_MEMBERS)
            members.create_index([("familyId", ASCENDING)])

            schedules = self.get_collection(SCHEDULES)
            schedules.create_index([("barangayId", ASCENDING), ("status", ASCENDING), ("date", DESCENDING)])

            # One non-rejected claim per family and schedule
            claims = self.get_collection(CLAIMS)
            claims.create_index(
                [("familyId", ASCENDING), ("scheduleId", ASCENDING)],
                unique=True,
                partialFilterExpression={"active": True},
                name="unique_active_claim"
            )
            claims.create_index([("barangayId", ASCENDING), ("status", ASCENDING), ("createdAt", DESCENDING)])
            claims.create_index([("scheduleId", ASCENDING)])

            audit_logs = self.get_collection(AUDIT_LOGS)
            audit_logs.create_index([("barangayId", ASCENDING), ("timestamp", DESCENDING)])
            audit_logs.create_index([("actorId", ASCENDING), ("timestamp", DESCENDING)])
            audit_logs.create_index("traceId")

            logger.info("MongoDB indexes created successfully")

        except Exception as e:
            logger.error(f"Failed to create MongoDB indexes: {e}")
            raise


def _validate_object_id(doc_id: str) -> Optional[ObjectId]:
    """Convert string ID to ObjectId; None for malformed IDs."""
    try:
        return ObjectId(doc_id)
    except (InvalidId, TypeError):
        logger.debug(f"Invalid ObjectId format: {doc_id}")
        return None


def _to_mongo(document: Dict[str, Any]) -> Dict[str, Any]:
    document = dict(document)
    document["_id"] = ObjectId(document.pop("id"))
    return document


def _from_mongo(document: Dict[str, Any]) -> Dict[str, Any]:
    document = dict(document)
    document["id"] = str(document.pop("_id"))
    return document


class MongoReliefStore(ReliefStore):
    """ReliefStore backed by MongoDB collections."""

    def __init__(self, mongo_service: MongoDBService):
        self.mongo_service = mongo_service
        logger.info("MongoDB store initialized")

    def _collection(self, name: str) -> Collection:
        return self.mongo_service.get_collection(name)

    def _insert(self, name: str, entity, unique_key: str = None) -> None:
        try:
            result = self._collection(name).insert_one(_to_mongo(entity.to_document()))
            logger.debug(f"Created document in {name}: {result.inserted_id}")
        except DuplicateKeyError as e:
            logger.warning(f"Duplicate key error in {name}: {e}")
            raise DuplicateEntryError(name, unique_key or entity.id)

    def _find_one(self, name: str, model: Type[T], query: Dict[str, Any]) -> Optional[T]:
        document = self._collection(name).find_one(query)
        return model.from_document(_from_mongo(document)) if document else None

    def _get(self, name: str, entity_id: str, model: Type[T]) -> Optional[T]:
        object_id = _validate_object_id(entity_id)
        if object_id is None:
            return None
        return self._find_one(name, model, {"_id": object_id})

    def _find(self, name: str, model: Type[T], query: Dict[str, Any], sort: List = None) -> List[T]:
        cursor = self._collection(name).find(query)
        if sort:
            cursor = cursor.sort(sort)
        return [model.from_document(_from_mongo(document)) for document in cursor]

    def _update(self, name: str, entity) -> None:
        document = _to_mongo(entity.to_document())
        object_id = document.pop("_id")
        result = self._collection(name).update_one({"_id": object_id}, {"$set": document})
        if result.matched_count == 0:
            raise KeyError(f"{name} document not found: {entity.id}")

    def _delete(self, name: str, entity_id: str) -> bool:
        object_id = _validate_object_id(entity_id)
        if object_id is None:
            return False
        return self._collection(name).delete_one({"_id": object_id}).deleted_count > 0

    # Barangays

    def insert_barangay(self, barangay: Barangay) -> Barangay:
        self._insert(BARANGAYS, barangay, barangay.code)
        return barangay

    def get_barangay(self, barangay_id: str) -> Optional[Barangay]:
        return self._get(BARANGAYS, barangay_id, Barangay)

    # Users

    def insert_user(self, user: User) -> User:
        self._insert(USERS, user)
        return user

    def get_user(self, user_id: str) -> Optional[User]:
        return self._get(USERS, user_id, User)

    def update_user(self, user: User) -> User:
        self._update(USERS, user)
        return user

    def list_residents(self, barangay_id: str, active_only: bool = True) -> List[User]:
        query = {"barangayId": barangay_id, "role": UserRole.RESIDENT.value}
        if active_only:
            query["isActive"] = True
        return self._find(USERS, User, query, [("firstName", ASCENDING)])

    def list_pending_residents(self, barangay_id: Optional[str] = None) -> List[User]:
        query = dict(PENDING_RESIDENT)
        if barangay_id is not None:
            query["barangayId"] = barangay_id
        return self._find(USERS, User, query, [("createdAt", DESCENDING)])

    def activate_user(self, user_id: str) -> bool:
        object_id = _validate_object_id(user_id)
        if object_id is None:
            return False
        result = self._collection(USERS).update_one(
            {"_id": object_id, **PENDING_RESIDENT},
            {"$set": {"isActive": True, "updatedAt": datetime.utcnow().isoformat()}}
        )
        return result.modified_count > 0

    def delete_pending_user(self, user_id: str) -> bool:
        object_id = _validate_object_id(user_id)
        if object_id is None:
            return False
        return self._collection(USERS).delete_one({"_id": object_id, **PENDING_RESIDENT}).deleted_count > 0

    # Families

    def insert_family(self, family: Family) -> Family:
        self._insert(FAMILIES, family, family.head_id)
        return family

    def get_family(self, family_id: str) -> Optional[Family]:
        return self._get(FAMILIES, family_id, Family)

    def get_family_by_head(self, head_id: str) -> Optional[Family]:
        return self._find_one(FAMILIES, Family, {"headId": head_id})

    def update_family(self, family: Family) -> Family:
        self._update(FAMILIES, family)
        return family

    def list_families(self, barangay_id: str) -> List[Family]:
        return self._find(FAMILIES, Family, {"barangayId": barangay_id})

    def delete_family(self, family_id: str) -> bool:
        return self._delete(FAMILIES, family_id)

    # Family members

    def insert_member(self, member: FamilyMember) -> FamilyMember:
        self._insert(FAMILY_MEMBERS, member)
        return member

    def get_member(self, member_id: str) -> Optional[FamilyMember]:
        return self._get(FAMILY_MEMBERS, member_id, FamilyMember)

    def _member_conflict(self, object_id: ObjectId, member_id: str, kind: AttributeKind) -> ConflictError:
        document = self._collection(FAMILY_MEMBERS).find_one({"_id": object_id})
        if document is None:
            return ConflictError(FAMILY_MEMBERS, member_id)
        stored = FamilyMember.from_document(_from_mongo(document))
        return ConflictError(FAMILY_MEMBERS, member_id, stored.attribute(kind).status.value)

    def update_member_profile(self, member: FamilyMember, fields: Iterable[str]) -> FamilyMember:
        fields = set(fields)
        document = member.to_document()
        changes = {to_camel(field): document[to_camel(field)] for field in fields}
        changes["updatedAt"] = document["updatedAt"]

        object_id = ObjectId(member.id)
        query = {"_id": object_id}
        if "age" in fields:
            senior = member.attribute(AttributeKind.SENIOR)
            query["attributes"] = {"$elemMatch": {"kind": senior.kind.value, "status": senior.status.value}}

        updated = self._collection(FAMILY_MEMBERS).find_one_and_update(
            query,
            {"$set": changes},
            return_document=ReturnDocument.AFTER
        )
        if updated is None:
            raise self._member_conflict(object_id, member.id, AttributeKind.SENIOR)
        return FamilyMember.from_document(_from_mongo(updated))

    def update_member_attribute(
        self,
        member_id: str,
        attribute: VerifiableAttribute,
        expected_status: VerificationStatus
    ) -> FamilyMember:
        object_id = ObjectId(member_id)
        query = {
            "_id": object_id,
            "attributes": {"$elemMatch": {
                "kind": attribute.kind.value,
                "status": VerificationStatus(expected_status).value
            }}
        }
        if attribute.kind == AttributeKind.SENIOR and (attribute.value or attribute.status != VerificationStatus.UNSET):
            query["age"] = {"$gte": SENIOR_CITIZEN_MIN_AGE}

        # Positional operator targets the element matched by $elemMatch
        updated = self._collection(FAMILY_MEMBERS).find_one_and_update(
            query,
            {"$set": {
                "attributes.$": attribute.model_dump(mode="json", by_alias=True),
                "updatedAt": datetime.utcnow().isoformat()
            }},
            return_document=ReturnDocument.AFTER
        )
        if updated is None:
            raise self._member_conflict(object_id, member_id, attribute.kind)
        return FamilyMember.from_document(_from_mongo(updated))

    def delete_member(self, member_id: str) -> bool:
        return self._delete(FAMILY_MEMBERS, member_id)

    def list_members(self, family_id: str) -> List[FamilyMember]:
        return self._find(FAMILY_MEMBERS, FamilyMember, {"familyId": family_id})

    # Donation schedules

    def insert_schedule(self, schedule: DonationSchedule) -> DonationSchedule:
        self._insert(SCHEDULES, schedule)
        return schedule

    def get_schedule(self, schedule_id: str) -> Optional[DonationSchedule]:
        return self._get(SCHEDULES, schedule_id, DonationSchedule)

    def update_schedule(self, schedule: DonationSchedule) -> DonationSchedule:
        self._update(SCHEDULES, schedule)
        return schedule

    def delete_schedule(self, schedule_id: str) -> bool:
        object_id = _validate_object_id(schedule_id)
        if object_id is None:
            return False
        schedules = self._collection(SCHEDULES)
        # Flag first so concurrent claim inserts see the schedule as gone
        marked = schedules.find_one_and_update(
            {"_id": object_id, "deleting": {"$ne": True}},
            {"$set": {"deleting": True}}
        )
        if marked is None:
            return False
        if self.count_claims(schedule_id) > 0:
            schedules.update_one({"_id": object_id}, {"$unset": {"deleting": ""}})
            raise ConflictError(SCHEDULES, schedule_id, marked.get("status"))
        return schedules.delete_one({"_id": object_id}).deleted_count > 0

    def list_schedules(self, barangay_id: str, status: Optional[ScheduleStatus] = None) -> List[DonationSchedule]:
        query = {"barangayId": barangay_id}
        if status is not None:
            query["status"] = ScheduleStatus(status).value
        return self._find(SCHEDULES, DonationSchedule, query, [("date", ASCENDING)])

    # Claims

    def insert_claim(self, claim: Claim) -> Claim:
        self._insert(CLAIMS, claim, f"{claim.family_id}:{claim.schedule_id}")
        schedule_id = _validate_object_id(claim.schedule_id)
        live = schedule_id is not None and self._collection(SCHEDULES).find_one(
            {"_id": schedule_id, "deleting": {"$ne": True}},
            {"_id": 1}
        )
        if not live:
            # Schedule deleted while the claim was being written
            self._collection(CLAIMS).delete_one({"_id": ObjectId(claim.id)})
            raise ConflictError(SCHEDULES, claim.schedule_id)
        return claim

    def get_claim(self, claim_id: str) -> Optional[Claim]:
        return self._get(CLAIMS, claim_id, Claim)

    def update_claim(self, claim: Claim, expected_status: ClaimStatus) -> Claim:
        document = _to_mongo(claim.to_document())
        object_id = document.pop("_id")
        claims = self._collection(CLAIMS)
        result = claims.update_one(
            {"_id": object_id, "status": ClaimStatus(expected_status).value},
            {"$set": document}
        )
        if result.matched_count == 0:
            current = claims.find_one({"_id": object_id}, {"status": 1})
            if current is None:
                raise KeyError(f"{CLAIMS} document not found: {claim.id}")
            raise ConflictError(CLAIMS, claim.id, current["status"])
        return claim

    def find_active_claim(self, family_id: str, schedule_id: str) -> Optional[Claim]:
        return self._find_one(CLAIMS, Claim, {
            "familyId": family_id,
            "scheduleId": schedule_id,
            "active": True
        })

    def list_claims(
        self,
        barangay_id: Optional[str] = None,
        schedule_id: Optional[str] = None,
        family_id: Optional[str] = None,
        status: Optional[ClaimStatus] = None
    ) -> List[Claim]:
        query = {}
        if barangay_id is not None:
            query["barangayId"] = barangay_id
        if schedule_id is not None:
            query["scheduleId"] = schedule_id
        if family_id is not None:
            query["familyId"] = family_id
        if status is not None:
            query["status"] = ClaimStatus(status).value
        return self._find(CLAIMS, Claim, query, [("createdAt", DESCENDING)])

    def count_claims(self, schedule_id: str) -> int:
        return self._collection(CLAIMS).count_documents({"scheduleId": schedule_id})

    def reserve_slot(self, schedule_id: str, capacity: int) -> bool:
        object_id = _validate_object_id(schedule_id)
        if object_id is None:
            return False
        # Conditional increment: matches only while slots remain
        updated = self._collection(SCHEDULES).find_one_and_update(
            {
                "_id": object_id,
                "deleting": {"$ne": True},
                "$or": [
                    {"reservedSlots": {"$exists": False}},
                    {"reservedSlots": {"$lt": capacity}}
                ]
            },
            {"$inc": {"reservedSlots": 1}},
            return_document=ReturnDocument.AFTER
        )
        return updated is not None

    def release_slot(self, schedule_id: str) -> None:
        object_id = _validate_object_id(schedule_id)
        if object_id is None:
            return
        self._collection(SCHEDULES).update_one(
            {"_id": object_id, "reservedSlots": {"$gt": 0}},
            {"$inc": {"reservedSlots": -1}}
        )

    # Audit logs

    def insert_audit_log(self, entry: AuditLog) -> AuditLog:
        self._collection(AUDIT_LOGS).insert_one(_to_mongo(entry.model_dump(mode="json", by_alias=True)))
        return entry

    def list_audit_logs(
        self,
        barangay_id: Optional[str] = None,
        action: Optional[str] = None,
        actor_id: Optional[str] = None,
        limit: int = 100
    ) -> List[AuditLog]:
        query = {}
        if barangay_id is not None:
            query["barangayId"] = barangay_id
        if action is not None:
            query["action"] = action
        if actor_id is not None:
            query["actorId"] = actor_id
        cursor = self._collection(AUDIT_LOGS).find(query).sort("timestamp", DESCENDING).limit(limit)
        return [AuditLog.model_validate(_from_mongo(document)) for document in cursor]
