from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from grindhub.db.database import get_db
from grindhub.schemas.groups import GroupCreate, GroupListItem, GroupResponse, GroupSummaryRequest
from grindhub.schemas.group_members import GroupJoin, GroupMemberResponse, UserGroupsRequest
from grindhub.services import group_service

router = APIRouter()


# ==================== 群组管理接口 ====================

@router.post("/create", status_code=201)
def create_group(
    group_data: GroupCreate,
    db: Session = Depends(get_db)
):
    """
    创建群组

    Body:
        - name: 群名称（必填）
        - description: 群描述（可选）

    说明：
        创建者不会自动入群，客户端拿到邀请码后再调用 /join
    """
    group = group_service.create_group(db, group_data.name, group_data.description)
    return {
        "success": True,
        "message": "Group added successfully!",
        "group": GroupResponse.model_validate(group).model_dump(mode="json"),
    }


@router.post("/summary")
def get_group_summary(
    req: GroupSummaryRequest,
    db: Session = Depends(get_db)
):
    """
    获取群资料（名称、描述、邀请码、成员）

    说明：
        群没有任何成员时和群不存在一样返回 404（沿用旧接口行为）
    """
    summary = group_service.get_group_summary(db, req.group_id)
    if not summary.members:
        return JSONResponse(
            status_code=404,
            content={"success": False, "message": "No description found!"},
        )
    return {
        "success": True,
        "message": "Description retrieved!",
        **summary.model_dump(mode="json"),
    }


# ==================== 群成员管理接口 ====================

@router.post("/join")
def join_group(
    req: GroupJoin,
    db: Session = Depends(get_db)
):
    """
    通过邀请码入群

    Body:
        - invitation_code: 邀请码
        - user_id: 用户ID

    说明：
        重复入群不报错，返回已有的成员记录（200）；新入群返回 201
    """
    member, created = group_service.join_group(db, req.invitation_code, req.user_id)
    return JSONResponse(
        status_code=201 if created else 200,
        content={
            "success": True,
            "message": "Person added successfully!" if created else "Already a member of this group",
            "membership": GroupMemberResponse.model_validate(member).model_dump(mode="json"),
        },
    )


@router.post("/list")
def get_user_groups(
    req: UserGroupsRequest,
    db: Session = Depends(get_db)
):
    """
    获取用户加入的所有群组

    说明：
        一个群都没有时返回 404（沿用旧接口行为）
    """
    groups = group_service.list_groups_for_user(db, req.user_id)
    if not groups:
        return JSONResponse(
            status_code=404,
            content={"success": False, "message": "No groups found!"},
        )
    return {
        "success": True,
        "message": "Group retrieved!",
        "groups": [GroupListItem.model_validate(g).model_dump(mode="json") for g in groups],
    }
