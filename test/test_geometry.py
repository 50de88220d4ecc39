from navdt.spatial import geometry
from navdt.spatial.geometry import Point, Polypoint


def test_point_value_semantics():
    assert Point(1,2)==Point(1,2)
    assert Point(1,2)==(1,2)
    assert len(set([Point(1,2),Point(1,2),Point(2,1)]))==2
    d={Point(3,4):'a'}
    assert d[geometry.as_point([3,4])]=='a'
    assert Point(4,6).subtract(Point(1,2))==Point(3,4)
    assert Point(1,2).dot(Point(3,4))==11
    assert Point(0,0).distance_squared(Point(3,4))==25

def test_polypoint_identity():
    a=Polypoint(1,1,'t1')
    b=Polypoint(1,1,'t2')
    assert a!=b
    assert a==Polypoint(1,1,'t1')
    assert len(set([a,b,Polypoint(1,1,'t1')]))==2
    assert a.triangle=='t1'

def test_in_circle_winding():
    a,b,c=(0,0),(10,0),(0,10)
    # either winding of the triangle gives the same answer
    assert geometry.in_circle(a,b,c,(5,5))==1
    assert geometry.in_circle(a,c,b,(5,5))==1
    assert geometry.in_circle(a,b,c,(20,20))==-1
    assert geometry.in_circle(a,b,c,(10,10))==0
    assert geometry.in_circle((0,0),(1,1),(2,2),(5,5))==0

def test_in_circle_sos():
    # cocircular square: exactly one diagonal is legal, whichever
    # apex is tested
    assert geometry.in_circle_sos((0,0),(10,10),(10,0),(0,10))==1
    assert geometry.in_circle_sos((0,0),(10,10),(0,10),(10,0))==1
    assert geometry.in_circle_sos((10,0),(0,10),(0,0),(10,10))==-1
    assert geometry.in_circle_sos((10,0),(0,10),(10,10),(0,0))==-1
    # no tie, same as in_circle
    a,b,c=(0,0),(10,0),(0,10)
    assert geometry.in_circle_sos(a,b,c,(5,5))==1
    assert geometry.in_circle_sos(a,c,b,(20,20))==-1
    assert geometry.in_circle_sos((0,0),(1,1),(2,2),(5,5))==0

def test_collinear():
    assert geometry.collinear((0,0),(1,1),(5,5))
    assert geometry.collinear((0,0),(0,0),(3,1))
    assert geometry.collinear((3,1),(0,0),(3,1))
    assert not geometry.collinear((0,0),(1,0),(0,1))

def test_radial_sort():
    pnts=[(1,0),(0,-1),(0,1),(-1,0)]
    result=geometry.radial_sort(pnts)
    assert result==[(0,1),(-1,0),(0,-1),(1,0)]

    # supplied pivot, and same direction sorts nearest first
    result=geometry.radial_sort([(5,7),(5,6),(4,5)],center=(5,5))
    assert result==[(5,6),(5,7),(4,5)]

    assert geometry.radial_sort([])==[]

def test_is_between_points():
    e=((3,0),(3,1))
    assert not geometry.is_between_points(e,(0,0),(0,1))
    assert not geometry.is_between_points(e,(4,0),(4,1))
    assert geometry.is_between_points(e,(0,0),(4,1))

    e=((3,3),(5,5))
    # on the segment, on the line, and at an endpoint
    for p1,p2 in [ ((4,4),(5,4)),
                   ((2,2),(2,3)),
                   ((3,3),(3,5)) ]:
        assert not geometry.is_between_points(e,p1,p2,strict=True)
        assert geometry.is_between_points(e,p1,p2,strict=False)

def test_on_same_side():
    e=((0,0),(10,0))
    assert geometry.on_same_side(e,(1,1),(5,3))
    assert not geometry.on_same_side(e,(1,1),(5,-3))
    assert not geometry.on_same_side(e,(1,0),(5,3))

def test_overlaps_edge():
    e1=((3,0),(6,3))
    assert geometry.overlaps_edge(e1,((4,1),(5,2)))
    assert geometry.overlaps_edge(e1,((4,1),(6,3)))
    assert geometry.overlaps_edge(e1,((4,1),(7,4)))
    assert geometry.overlaps_edge(e1,((6,3),(7,4)))
    assert not geometry.overlaps_edge(e1,((4,1),(5,1)))
    assert not geometry.overlaps_edge(e1,((4,1),(6,2)))
    assert not geometry.overlaps_edge(e1,((7,4),(8,5)))
    # vertical
    assert geometry.overlaps_edge(((0,0),(0,5)),((0,5),(0,9)))

def test_segments_cross():
    assert geometry.segments_cross(((0,0),(10,10)),((0,10),(10,0)))
    # touching at an endpoint is not a crossing
    assert not geometry.segments_cross(((0,0),(10,10)),((5,5),(10,0)))
    assert not geometry.segments_cross(((0,0),(1,1)),((0,10),(10,0)))

def test_on_segment_interior():
    e=((0,0),(10,0))
    assert geometry.on_segment_interior((5,0),e)
    assert not geometry.on_segment_interior((0,0),e)
    assert not geometry.on_segment_interior((11,0),e)
    assert not geometry.on_segment_interior((5,1),e)

def test_point_in_triangle():
    assert geometry.point_in_triangle((1,1),(0,0),(10,0),(0,10))
    assert geometry.point_in_triangle((5,0),(0,0),(0,10),(10,0))
    assert geometry.point_in_triangle((0,0),(0,0),(10,0),(0,10))
    assert not geometry.point_in_triangle((6,6),(0,0),(10,0),(0,10))
    assert not geometry.point_in_triangle((1,1),(0,0),(5,5),(10,10))
